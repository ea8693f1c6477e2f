"""
Session messages — the closed set of inputs the session controller accepts.

Everything that can change session state arrives as one of these:
keystrokes and resizes from the terminal, and results posted by the
debounce timer and install worker threads through the controller
queue. Nothing else mutates the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from gopick.core.models.package import Package


@dataclass(frozen=True)
class KeyInput:
    """A key press. ``key`` is the key name (``enter``, ``ctrl+c``, ``a``);
    ``character`` is the printable character, if any."""

    key: str
    character: str | None = None


@dataclass(frozen=True)
class WindowResize:
    width: int
    height: int


@dataclass(frozen=True)
class TimerFired:
    """The debounce timer for ``token`` elapsed and its search started."""

    token: int
    query: str


@dataclass(frozen=True)
class SearchCompleted:
    token: int
    query: str
    packages: list[Package] = field(default_factory=list)
    from_cache: bool = False
    stale: bool = False
    error: str | None = None


@dataclass(frozen=True)
class InstallProgress:
    """Progress from the install worker. The final event has ``done`` set and
    carries the result list re-annotated with fresh installed status."""

    message: str
    percent: float
    done: bool = False
    refreshed: list[Package] | None = None


@dataclass(frozen=True)
class InstallFailed:
    error: str


Message = Union[KeyInput, WindowResize, TimerFired, SearchCompleted, InstallProgress, InstallFailed]
