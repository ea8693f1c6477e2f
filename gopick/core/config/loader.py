"""
Configuration loader — reads ``config.yml`` into a validated Config.

Location, in precedence order:
    --config PATH  >  GOPICK_CONFIG env var  >  ~/.config/gopick/config.yml

A missing file is not an error: defaults are written to the default
location and returned, so the user has something to edit. Any other
problem (unreadable file, invalid YAML, bad values) raises ConfigError,
which aborts startup.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from gopick.adapters.shell.command import run_command
from gopick.core.persistence.atomic import atomic_write_text
from gopick.core.services.install_resolver import InstallResolver

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GOPICK_CONFIG"
CONFIG_FILE = "config.yml"


class ConfigError(Exception):
    """Raised when the configuration is unreadable or invalid."""


def config_dir() -> Path:
    return Path.home() / ".config" / "gopick"


def default_config_path() -> Path:
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return config_dir() / CONFIG_FILE


class Config(BaseModel):
    """User configuration."""

    cache_dir: Path = Field(default_factory=lambda: config_dir() / "cache")
    history_file: Path = Field(default_factory=lambda: config_dir() / ".gopick_history")
    cache_ttl_days: int = Field(default=7, ge=0)
    max_history_entries: int = Field(default=1000, ge=1)
    default_action: Literal["command", "download"] = "command"
    search_debounce_ms: int = Field(default=300, ge=0)
    gomodcache_path: Path | None = None

    # Network
    base_url: str = "https://pkg.go.dev"
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    request_timeout: float = Field(default=10.0, gt=0)

    # Toolchain
    go_binary: str = "go"

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(days=self.cache_ttl_days)

    @property
    def debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000

    def expand_paths(self) -> Config:
        """Copy with ``~`` and ``$VARS`` expanded in every path field."""
        return self.model_copy(update={
            "cache_dir": _expand(self.cache_dir),
            "history_file": _expand(self.history_file),
            "gomodcache_path": _expand(self.gomodcache_path) if self.gomodcache_path else None,
        })

    def ensure_directories(self) -> None:
        for directory in (self.cache_dir, self.history_file.parent):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigError(f"failed to create directory {directory}: {e}") from e


def _expand(path: Path) -> Path:
    return Path(os.path.expandvars(str(path))).expanduser()


def detect_gomodcache(go_binary: str = "go") -> Path:
    """Locate the Go module cache the way the install resolver does."""
    return InstallResolver(go_binary=go_binary, run=run_command).locate_gomodcache()


def save_config(config: Config, path: Path) -> None:
    data = config.model_dump(mode="json", exclude_none=True)
    content = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    try:
        atomic_write_text(path, content, prefix=".config_")
    except OSError as e:
        raise ConfigError(f"failed to save config to {path}: {e}") from e


def load_config(path: Path | None = None) -> Config:
    """Load, validate and prepare the configuration.

    Args:
        path: Explicit config file. If None, the default location is used
            and created with defaults when missing.

    Returns:
        Config with paths expanded, GOMODCACHE resolved, and the cache and
        history directories created.

    Raises:
        ConfigError: If the file is unreadable or invalid, or a directory
            cannot be created.
    """
    explicit = path is not None
    path = path or default_config_path()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        logger.info("No config at %s — writing defaults", path)
        config = Config()
        save_config(config, path)
    else:
        config = _read_config(path)

    config = config.expand_paths()
    if config.gomodcache_path is None:
        config = config.model_copy(update={"gomodcache_path": detect_gomodcache(config.go_binary)})

    config.ensure_directories()
    logger.debug("Loaded config from %s", path)
    return config


def _read_config(path: Path) -> Config:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
