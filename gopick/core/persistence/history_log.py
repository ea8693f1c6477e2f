"""
History log — bounded activity log of viewed and installed packages.

Stored as NDJSON (one JSON object per line), oldest first. Unlike the
append-only audit ledger pattern, every ``add`` rewrites the whole
file (read all, append, truncate to the cap, write via temp file +
rename) so the cap is enforced on disk and a reader never sees a
partially written log.

Duplicate suppression: an entry is not added if one of the last
``DEDUP_SCAN`` entries has the same package, import path and action
and was written less than ``DEDUP_WINDOW`` ago. The scan is bounded,
so a repeat separated by more than ``DEDUP_SCAN`` other entries is
recorded again even inside the window.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from gopick.core.models.history import HistoryAction, HistoryEntry
from gopick.core.persistence.atomic import atomic_write_text

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(hours=1)
DEDUP_SCAN = 10


class HistoryError(Exception):
    """Raised when the history file cannot be created, read, or written."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class HistoryLog:
    """Deduplicating, size-bounded history of package activity."""

    def __init__(
        self,
        path: Path,
        max_entries: int = 1000,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._path = path
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
        except OSError as e:
            raise HistoryError(f"Failed to create history file {path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    # ── Write ───────────────────────────────────────────────────

    def add(self, package: str, import_path: str, action: HistoryAction) -> bool:
        """Record an action. Returns False if it was suppressed as a duplicate.

        Raises:
            HistoryError: If the log cannot be read or rewritten.
        """
        with self._lock:
            entries = self._read_entries()
            now = self._clock()

            if self._is_duplicate(entries, package, import_path, action, now):
                logger.debug("Skipping duplicate history entry: %s %s", action.value, import_path)
                return False

            entries.append(HistoryEntry(
                timestamp=now,
                package=package,
                import_path=import_path,
                action=action,
            ))
            if len(entries) > self._max_entries:
                entries = entries[-self._max_entries:]

            self._write_entries(entries)
            return True

    def clear(self) -> None:
        """Empty the log, keeping the file in place."""
        with self._lock:
            try:
                self._path.write_text("", encoding="utf-8")
            except OSError as e:
                raise HistoryError(f"Failed to clear history: {e}") from e

    # ── Read ────────────────────────────────────────────────────

    def get_all(self) -> list[HistoryEntry]:
        """All entries, oldest first."""
        with self._lock:
            return self._read_entries()

    def get_recent(self, n: int) -> list[HistoryEntry]:
        """The last ``n`` entries (fewer if the log is shorter), oldest first."""
        if n <= 0:
            return []
        with self._lock:
            return self._read_entries()[-n:]

    def search(self, query: str) -> list[HistoryEntry]:
        """Entries whose package name or import path contains ``query`` (case-sensitive)."""
        if not query:
            return []
        with self._lock:
            return [
                e for e in self._read_entries()
                if query in e.package or query in e.import_path
            ]

    def installed_paths(self) -> set[str]:
        """Import paths that have ever been recorded as installed."""
        with self._lock:
            return {
                e.import_path for e in self._read_entries()
                if e.action == HistoryAction.INSTALLED
            }

    # ── Internal ────────────────────────────────────────────────

    def _is_duplicate(
        self,
        entries: list[HistoryEntry],
        package: str,
        import_path: str,
        action: HistoryAction,
        now: datetime,
    ) -> bool:
        for entry in entries[-DEDUP_SCAN:]:
            if entry.matches(package, import_path, action) and now - entry.timestamp < DEDUP_WINDOW:
                return True
        return False

    def _read_entries(self) -> list[HistoryEntry]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise HistoryError(f"Failed to read history: {e}") from e

        entries: list[HistoryEntry] = []
        for line_num, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(HistoryEntry.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping corrupt history entry at line %d: %s", line_num, e)
        return entries

    def _write_entries(self, entries: list[HistoryEntry]) -> None:
        content = "".join(
            json.dumps(e.model_dump(mode="json"), ensure_ascii=False) + "\n"
            for e in entries
        )
        try:
            atomic_write_text(self._path, content, prefix=".history_")
        except OSError as e:
            raise HistoryError(f"Failed to save history: {e}") from e
