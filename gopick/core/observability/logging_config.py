"""
Logging configuration — one setup call per process.

main.py resolves the level with ``resolve_level`` and calls
``setup_logging`` once; modules just do
``logger = logging.getLogger(__name__)``.

Level precedence:
    --debug / --verbose / --quiet  >  GOPICK_LOG_LEVEL  >  WARNING

The full-screen picker owns the terminal, so it runs without a console
handler. Its logs only go to GOPICK_LOG_FILE (level GOPICK_LOG_FILE_LEVEL),
a size-rotated file.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LEVEL_ENV_VAR = "GOPICK_LOG_LEVEL"
FILE_ENV_VAR = "GOPICK_LOG_FILE"
FILE_LEVEL_ENV_VAR = "GOPICK_LOG_FILE_LEVEL"

_FMT_CONSOLE = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_CONSOLE_DEFAULT = ("%(levelname)s: %(message)s", None)

_FMT_FILE = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Rotation keeps a long-lived log file from growing across sessions.
_FILE_MAX_BYTES = 1_000_000
_FILE_BACKUPS = 3

# textual logs every event at DEBUG
_NOISY_LOGGERS = ("asyncio", "markdown_it", "textual", "bs4")


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Level name from the CLI flags, falling back to GOPICK_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV_VAR, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    console: bool = True,
) -> None:
    """Configure the root logger.

    Args:
        level: Console level name.
        log_file: Optional log file; its directory is created.
        log_file_level: Level for the file. Defaults to ``level``.
        quiet_third_party: Hold noisy library loggers at WARNING unless
            ``level`` is DEBUG.
        console: Attach a stderr handler. Off while the TUI is running.
    """
    numeric_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()

    if console:
        fmt, datefmt = _console_format(numeric_level)
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(numeric_level)
        stream.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        root.addHandler(stream)
    else:
        root.addHandler(logging.NullHandler())

    root_level = numeric_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        root_level = min(root_level, file_level)
        root.addHandler(_file_handler(Path(log_file).expanduser(), file_level))

    root.setLevel(root_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    if level <= logging.DEBUG:
        return _FMT_CONSOLE[logging.DEBUG]
    if level <= logging.INFO:
        return _FMT_CONSOLE[logging.INFO]
    return _FMT_CONSOLE_DEFAULT


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=_FILE_MAX_BYTES,
        backupCount=_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
