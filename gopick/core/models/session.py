"""
SessionState — everything the interactive session shows and remembers.

Owned by the session controller and mutated only on its thread.
Not persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from gopick.core.models.history import HistoryEntry
from gopick.core.models.package import Package


class View(str, Enum):
    SEARCH = "search"
    OPTIONS = "options"
    INSTALLING = "installing"
    COMMANDS = "commands"
    HELP = "help"               # modal over SEARCH


class MessageKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SessionState:
    view: View = View.SEARCH

    # ── Search ───────────────────────────────────────────────────
    query: str = ""
    results: list[Package] = field(default_factory=list)
    cursor: int = 0
    selected: set[int] = field(default_factory=set)
    searching: bool = False
    from_cache: bool = False
    search_token: int = 0

    # ── Feedback ─────────────────────────────────────────────────
    message: str = ""
    message_kind: MessageKind = MessageKind.INFO

    # ── Install ──────────────────────────────────────────────────
    installing: list[Package] = field(default_factory=list)
    install_percent: float = 0.0
    install_message: str = ""

    # ── Commands view ────────────────────────────────────────────
    commands: list[str] = field(default_factory=list)

    # ── Layout ───────────────────────────────────────────────────
    width: int = 80
    height: int = 24

    # ── History ──────────────────────────────────────────────────
    recent: list[HistoryEntry] = field(default_factory=list)
    installed_paths: set[str] = field(default_factory=set)

    # ── Exit outcome ─────────────────────────────────────────────
    quit: bool = False
    commands_to_print: list[str] = field(default_factory=list)
    auto_run: bool = False

    def selected_packages(self) -> list[Package]:
        """Selected results in list order."""
        return [self.results[i] for i in sorted(self.selected) if i < len(self.results)]

    def set_results(self, packages: list[Package]) -> None:
        """Replace the result list; cursor and selection start over."""
        self.results = list(packages)
        self.cursor = 0
        self.selected = set()

    def show(self, message: str, kind: MessageKind = MessageKind.INFO) -> None:
        self.message = message
        self.message_kind = kind
