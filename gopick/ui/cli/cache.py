"""
CLI commands for the search-result cache.
"""

from __future__ import annotations

import click

from gopick.core.persistence.result_cache import CacheError
from gopick.ui.cli.helpers import fail, resolve_components, resolve_config


@click.group()
def cache() -> None:
    """Cache — clear, clean, path."""


@cache.command("clear")
@click.pass_context
def cache_clear(ctx: click.Context) -> None:
    """Delete every cached search."""
    components = resolve_components(ctx)
    try:
        removed = components.cache.clear()
    except CacheError as e:
        fail(f"Failed to clear cache: {e}")
    click.secho(f"✅ Cache cleared ({removed} entries)", fg="green")


@cache.command("clean")
@click.pass_context
def cache_clean(ctx: click.Context) -> None:
    """Delete expired cached searches only."""
    components = resolve_components(ctx)
    try:
        removed = components.cache.clean_expired()
    except CacheError as e:
        fail(f"Failed to clean cache: {e}")
    click.secho(f"✅ Removed {removed} expired entries", fg="green")


@cache.command("path")
@click.pass_context
def cache_path(ctx: click.Context) -> None:
    """Print the cache directory."""
    click.echo(str(resolve_config(ctx).cache_dir))
