"""
Shared helpers for the CLI commands.

Startup failures are reported once here and exit with status 1.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from gopick.core.config.loader import Config, ConfigError, load_config
from gopick.core.persistence.history_log import HistoryError
from gopick.core.persistence.result_cache import CacheError
from gopick.core.use_cases.bootstrap import Components, build_components


def fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def resolve_config(ctx: click.Context) -> Config:
    """Load the config once per invocation and keep it on the context."""
    config = ctx.obj.get("config")
    if config is None:
        try:
            config = load_config(ctx.obj.get("config_path"))
        except ConfigError as e:
            fail(f"Configuration error: {e}")
        ctx.obj["config"] = config
    return config


def resolve_components(ctx: click.Context) -> Components:
    components = ctx.obj.get("components")
    if components is None:
        config = resolve_config(ctx)
        try:
            components = build_components(config)
        except (CacheError, HistoryError) as e:
            fail(f"Initialization failed: {e}")
        ctx.obj["components"] = components
    return components
