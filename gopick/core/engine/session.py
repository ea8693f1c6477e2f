"""
Session controller — the interactive state machine.

One instance drives one interactive run. ``dispatch`` is the only
transition function: it looks up a handler by (current view, message
type) and applies it to ``self.state``. Slow work never runs here:

- searches run on the SearchCoordinator's debounce timer thread,
- installs run on a worker thread started through ``spawn``,

and both report back by putting messages on the shared queue that the
UI drains with ``drain()`` on its own thread.

Views::

    SEARCH ──enter──▶ OPTIONS ──g/d──▶ exit (command printed / run)
      ▲  │              │ ├──v──▶ COMMANDS ──esc──▶ SEARCH
      │  H              │ └──i──▶ INSTALLING ──done/failed──▶ SEARCH
      │  ▼              └──c/esc──▶ SEARCH
      HELP

Persistence failures (CacheError from construction, HistoryError from
any history write) propagate out of ``dispatch``; the top-level loop
treats them as fatal.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Literal

from gopick.core.engine.messages import (
    InstallFailed,
    InstallProgress,
    KeyInput,
    Message,
    SearchCompleted,
    TimerFired,
    WindowResize,
)
from gopick.core.models.history import HistoryAction
from gopick.core.models.package import Package
from gopick.core.models.session import MessageKind, SessionState, View
from gopick.core.persistence.history_log import HistoryLog
from gopick.core.persistence.result_cache import CacheError, ResultCache
from gopick.core.services.install_resolver import InstallError, InstallResolver
from gopick.core.services.search_coordinator import SearchCoordinator

logger = logging.getLogger(__name__)

RECENT_HISTORY = 10

DefaultAction = Literal["command", "download"]
Spawn = Callable[[Callable[[], None]], None]

_QUIT_KEYS = {"ctrl+c", "ctrl+q"}


def _spawn_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, name="gopick-install", daemon=True).start()


class SessionStateMachine:
    """Owns ``SessionState`` and applies every transition to it."""

    def __init__(
        self,
        coordinator: SearchCoordinator,
        resolver: InstallResolver,
        history: HistoryLog,
        cache: ResultCache,
        outbox: queue.Queue,
        *,
        default_action: DefaultAction = "command",
        spawn: Spawn = _spawn_thread,
    ):
        self.state = SessionState()
        self._coordinator = coordinator
        self._resolver = resolver
        self._history = history
        self._cache = cache
        self._outbox = outbox
        self._default_action = default_action
        self._spawn = spawn
        self._closed = False
        self._deferred: SearchCompleted | None = None

        # (view, message type) → handler. ``None`` matches any view.
        self._transitions: dict[tuple[View | None, type], Callable] = {
            (None, WindowResize): self._on_resize,
            (None, TimerFired): self._on_timer_fired,
            (None, SearchCompleted): self._on_search_completed,
            (View.SEARCH, KeyInput): self._search_key,
            (View.HELP, KeyInput): self._help_key,
            (View.OPTIONS, KeyInput): self._options_key,
            (View.COMMANDS, KeyInput): self._commands_key,
            (View.INSTALLING, InstallProgress): self._on_install_progress,
            (View.INSTALLING, InstallFailed): self._on_install_failed,
        }

        self._refresh_history()

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Entry points ────────────────────────────────────────────

    def dispatch(self, message: Message) -> None:
        """Apply one message to the session state."""
        if self._closed:
            return

        handler = (
            self._transitions.get((self.state.view, type(message)))
            or self._transitions.get((None, type(message)))
        )
        if handler is None:
            logger.debug("Ignoring %s in view %s", type(message).__name__, self.state.view.value)
            return
        handler(message)

    def drain(self) -> int:
        """Dispatch every message waiting on the queue. Returns how many."""
        count = 0
        while not self._closed:
            try:
                message = self._outbox.get_nowait()
            except queue.Empty:
                break
            self.dispatch(message)
            count += 1
        return count

    def close(self) -> None:
        """Stop the debounce timer; anything still in flight is discarded."""
        self._closed = True
        self._coordinator.close()

    # ── Any view ────────────────────────────────────────────────

    def _on_resize(self, msg: WindowResize) -> None:
        self.state.width = msg.width
        self.state.height = msg.height

    def _on_timer_fired(self, msg: TimerFired) -> None:
        if msg.token == self.state.search_token:
            self.state.searching = True

    def _on_search_completed(self, msg: SearchCompleted) -> None:
        if msg.token != self.state.search_token:
            logger.debug("Discarding stale results for %r", msg.query)
            return

        if self.state.view not in (View.SEARCH, View.HELP):
            # Applied when the user is back on the search view.
            self._deferred = msg
            return

        self._apply_results(msg)

    def _apply_results(self, msg: SearchCompleted) -> None:
        s = self.state
        s.searching = False

        if msg.error:
            s.show(f"Search failed: {msg.error}", MessageKind.ERROR)
            return

        s.set_results(msg.packages)
        s.from_cache = msg.from_cache

        if not msg.packages:
            s.show("No packages found")
        elif msg.stale:
            s.show("Network unavailable, showing cached results")
        else:
            s.show("")

    # ── Search view ─────────────────────────────────────────────

    def _search_key(self, msg: KeyInput) -> None:
        s = self.state
        key, char = msg.key, msg.character

        if key in _QUIT_KEYS or char == "Q":
            self._quit()
        elif key == "escape":
            if not s.query:
                self._quit()
            else:
                self._set_query("")
        elif key == "up":
            if s.cursor > 0:
                s.cursor -= 1
        elif key == "down":
            if s.cursor < len(s.results) - 1:
                s.cursor += 1
        elif key == "tab":
            if s.results:
                s.selected ^= {s.cursor}
        elif key == "enter":
            self._confirm_selection()
        elif key == "ctrl+h" or char == "H":
            s.view = View.HELP
        elif key == "ctrl+a" or char == "A":
            s.selected = set(range(len(s.results)))
        elif key == "ctrl+n" or char == "N":
            s.selected = set()
        elif char == "C":
            self._clear_cache()
        elif key == "backspace":
            if s.query:
                self._set_query(s.query[:-1])
        elif char and char.isprintable():
            self._set_query(s.query + char)
        else:
            s.show("")

    def _set_query(self, query: str) -> None:
        s = self.state
        s.query = query
        s.message = ""
        s.search_token = self._coordinator.on_query_changed(query)
        self._deferred = None

        if not query:
            s.set_results([])
            s.searching = False
        else:
            s.searching = True

    def _confirm_selection(self) -> None:
        s = self.state
        if not s.results:
            return
        if not s.selected:
            s.selected.add(s.cursor)

        s.view = View.OPTIONS
        for pkg in s.selected_packages():
            self._history.add(pkg.name, pkg.import_path, HistoryAction.VIEWED)
        self._refresh_history()

    def _clear_cache(self) -> None:
        try:
            removed = self._cache.clear()
        except CacheError as e:
            self.state.show(f"Failed to clear cache: {e}", MessageKind.ERROR)
            return
        self.state.show(f"Cache cleared ({removed} entries)", MessageKind.SUCCESS)

    # ── Help overlay ────────────────────────────────────────────

    def _help_key(self, msg: KeyInput) -> None:
        self._enter_search()

    # ── Options view ────────────────────────────────────────────

    def _options_key(self, msg: KeyInput) -> None:
        char = (msg.character or "").lower()

        if msg.key == "escape" or char == "c":
            self._enter_search()
        elif char == "g":
            self._give_command()
        elif char == "d":
            self._download()
        elif char == "v":
            self._view_command()
        elif char == "i":
            self._install_now()
        elif msg.key == "enter":
            if self._default_action == "download":
                self._download()
            else:
                self._give_command()

    def _give_command(self) -> None:
        command = self._resolver.get_install_command(self.state.selected_packages())
        if not command:
            self._nothing_to_install()
            return
        self._exit_with(command, auto_run=False)

    def _download(self) -> None:
        selected = self.state.selected_packages()
        command = self._resolver.get_install_command(selected)
        if not command:
            self._nothing_to_install()
            return

        for pkg in selected:
            self._history.add(pkg.name, pkg.import_path, HistoryAction.INSTALLED)
        self._exit_with(command, auto_run=True)

    def _view_command(self) -> None:
        command = self._resolver.get_install_command(self.state.selected_packages())
        if not command:
            self._nothing_to_install()
            return
        self.state.commands = [command]
        self.state.view = View.COMMANDS

    def _install_now(self) -> None:
        s = self.state
        packages = s.selected_packages()
        if not packages:
            self._enter_search()
            return

        s.installing = packages
        s.install_percent = 0.0
        s.install_message = ""
        s.view = View.INSTALLING

        results = list(s.results)
        self._spawn(lambda: self._run_install(packages, results))

    def _nothing_to_install(self) -> None:
        self.state.show("All selected packages are already installed")
        self._enter_search()

    def _exit_with(self, command: str, *, auto_run: bool) -> None:
        self.state.commands_to_print = [command]
        self.state.auto_run = auto_run
        self._quit()

    # ── Commands view ───────────────────────────────────────────

    def _commands_key(self, msg: KeyInput) -> None:
        if msg.key in ("escape", "enter") or (msg.character or "").lower() == "q":
            self.state.commands = []
            self._enter_search()

    # ── Installing view ─────────────────────────────────────────

    def _run_install(self, packages: list[Package], results: list[Package]) -> None:
        """Worker thread: stream install progress onto the queue."""
        try:
            for event in self._resolver.install_packages_events(packages):
                self._outbox.put(InstallProgress(event.message, event.percent))
            self._resolver.refresh_cache()
            refreshed = self._resolver.mark_installed_packages(results)
        except InstallError as e:
            self._outbox.put(InstallFailed(str(e)))
            return
        except Exception as e:
            logger.exception("Install worker crashed")
            self._outbox.put(InstallFailed(str(e)))
            return

        self._outbox.put(InstallProgress(
            "Installation completed successfully!",
            100.0,
            done=True,
            refreshed=refreshed,
        ))

    def _on_install_progress(self, msg: InstallProgress) -> None:
        s = self.state
        s.install_percent = msg.percent
        s.install_message = msg.message
        if not msg.done:
            return

        if msg.refreshed is not None:
            s.results = list(msg.refreshed)
        s.selected = set()

        for pkg in s.installing:
            self._history.add(pkg.name, pkg.import_path, HistoryAction.INSTALLED)
        s.installing = []
        self._refresh_history()

        self._enter_search()
        s.show(msg.message, MessageKind.SUCCESS)

    def _on_install_failed(self, msg: InstallFailed) -> None:
        s = self.state
        s.installing = []
        self._enter_search()
        s.show(f"Installation failed: {msg.error}", MessageKind.ERROR)

    # ── Helpers ─────────────────────────────────────────────────

    def _enter_search(self) -> None:
        self.state.view = View.SEARCH
        if self._deferred is not None:
            pending, self._deferred = self._deferred, None
            self._apply_results(pending)

    def _refresh_history(self) -> None:
        self.state.recent = self._history.get_recent(RECENT_HISTORY)
        self.state.installed_paths = self._history.installed_paths()

    def _quit(self) -> None:
        self.state.quit = True
        self.close()
