"""
Result cache — one JSON file per search query, expiring after a TTL.

Files live in the configured cache directory and are named by the
SHA-256 hex digest of the query text, so any query (spaces, slashes,
unicode) maps to a safe file name::

    <cache_dir>/9f86d081884c7d65....json

Each file holds a pretty-printed CacheEntry (query, results,
timestamp). Writes are atomic (temp file + rename). An expired entry
is never returned: reading it deletes the file.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from gopick.core.models.package import CacheEntry, Package
from gopick.core.persistence.atomic import atomic_write_text

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".json"


class CacheError(Exception):
    """Raised when the cache directory cannot be created, listed, or written."""


class ResultCache:
    """TTL-expiring query → results store backed by one file per query.

    All file I/O goes through a single lock, so a ``get`` never races a
    ``set`` or a sweep on the same instance.
    """

    def __init__(self, cache_dir: Path, ttl: timedelta):
        self._dir = cache_dir
        self._ttl = ttl
        self._lock = threading.Lock()

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {cache_dir}: {e}") from e

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def path_for(self, query: str) -> Path:
        """Cache file path for a query."""
        digest = hashlib.sha256(query.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}{CACHE_SUFFIX}"

    # ── Read ────────────────────────────────────────────────────

    def get(self, query: str) -> CacheEntry | None:
        """Return the cached entry for ``query``, or None.

        Missing, unreadable, and corrupt files are all a miss. An
        expired entry is deleted and reported as a miss.
        """
        path = self.path_for(query)
        with self._lock:
            entry = self._read(path)
            if entry is None:
                return None

            if self._is_expired(entry):
                logger.debug("Cache entry for %r expired — removing %s", query, path.name)
                path.unlink(missing_ok=True)
                return None

        return entry

    # ── Write ───────────────────────────────────────────────────

    def set(self, query: str, packages: list[Package]) -> CacheEntry:
        """Store ``packages`` as the results for ``query`` (replaces any previous entry).

        Raises:
            CacheError: If the record cannot be written.
        """
        entry = CacheEntry(query=query, results=list(packages))
        content = json.dumps(entry.model_dump(mode="json"), indent=2, ensure_ascii=False)
        path = self.path_for(query)

        with self._lock:
            try:
                atomic_write_text(path, content + "\n", prefix=".cache_")
            except OSError as e:
                raise CacheError(f"Failed to write cache file {path.name}: {e}") from e

        logger.debug("Cached %d results for %r", len(entry.results), query)
        return entry

    # ── Maintenance ─────────────────────────────────────────────

    def clear(self) -> int:
        """Remove every cache record. Returns the number removed.

        Raises:
            CacheError: If the directory cannot be listed or a file removed.
        """
        removed = 0
        with self._lock:
            for path in self._records():
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise CacheError(f"Failed to remove cache file {path.name}: {e}") from e
                removed += 1

        logger.info("Cleared %d cache records from %s", removed, self._dir)
        return removed

    def clean_expired(self) -> int:
        """Delete every record older than the TTL. Returns the number removed.

        Best-effort: records that cannot be read or parsed are skipped.

        Raises:
            CacheError: If the cache directory is missing or unreadable.
        """
        removed = 0
        with self._lock:
            for path in self._records():
                entry = self._read(path)
                if entry is None or not self._is_expired(entry):
                    continue
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    logger.debug("Skipping %s during sweep: %s", path.name, e)

        if removed:
            logger.info("Removed %d expired cache records", removed)
        return removed

    # ── Internal ────────────────────────────────────────────────

    def _records(self) -> list[Path]:
        try:
            return [
                p for p in self._dir.iterdir()
                if p.suffix == CACHE_SUFFIX and p.is_file()
            ]
        except OSError as e:
            raise CacheError(f"Failed to read cache directory {self._dir}: {e}") from e

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError:
            return None

        try:
            return CacheEntry.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Corrupt cache file %s: %s", path.name, e)
            return None

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self._ttl <= timedelta(0):
            return True
        return entry.age_seconds(datetime.now(UTC)) > self._ttl.total_seconds()
