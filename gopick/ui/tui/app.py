"""
Interactive app — textual driver for the session controller.

The app owns no session logic. It turns terminal events into controller
messages, drains the controller queue on a short interval, and repaints
the single Static widget from ``render(state, theme)`` after each step.
"""

from __future__ import annotations

import logging

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from gopick.core.engine.messages import KeyInput, Message, WindowResize
from gopick.core.engine.session import SessionStateMachine
from gopick.core.persistence.history_log import HistoryError
from gopick.core.persistence.result_cache import CacheError
from gopick.ui.tui.render import render
from gopick.ui.tui.theme import DEFAULT_THEME, Theme

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


class GopickApp(App[None]):
    """Full-screen package picker."""

    CSS = """
    Screen {
        overflow: hidden;
    }
    #view {
        width: 100%;
        height: 100%;
    }
    """
    ENABLE_COMMAND_PALETTE = False

    def __init__(self, machine: SessionStateMachine, palette: Theme = DEFAULT_THEME):
        super().__init__()
        self.machine = machine
        self.palette = palette
        self.fatal_error: Exception | None = None

    def compose(self) -> ComposeResult:
        yield Static(id="view")

    def on_mount(self) -> None:
        self.set_interval(POLL_INTERVAL, self._poll)
        self._repaint()

    def on_unmount(self) -> None:
        self.machine.close()

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self._dispatch(KeyInput(key=event.key, character=event.character))

    def on_resize(self, event: events.Resize) -> None:
        self._dispatch(WindowResize(width=event.size.width, height=event.size.height))

    # ── Steps ───────────────────────────────────────────────────

    def _poll(self) -> None:
        self._step(self.machine.drain)

    def _dispatch(self, message: Message) -> None:
        self._step(lambda: self.machine.dispatch(message))

    def _step(self, action) -> None:
        try:
            action()
        except (CacheError, HistoryError) as e:
            logger.error("Fatal persistence error: %s", e)
            self.fatal_error = e
            self.machine.close()
            self.exit()
            return

        if self.machine.state.quit:
            self.exit()
            return
        self._repaint()

    def _repaint(self) -> None:
        # Resize can arrive before compose has mounted the view.
        for view in self.query("#view").results(Static):
            view.update(render(self.machine.state, self.palette))
