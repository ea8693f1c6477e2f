"""
Package and CacheEntry models — what a search returns and what the
result cache stores.

A Package is identified by its import path. Two records with the same
import path are the same package even if their descriptions or
versions differ, which is how the cache and selection logic compare
them.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from pydantic import BaseModel, Field

# major.minor[.patch][-pre][+build], without the "v"
_SEMVER = re.compile(r"^\d+\.\d+(\.\d+)?([-+].*)?$")


def _now() -> datetime:
    return datetime.now(UTC)


def normalize_version(raw: str) -> str:
    """Stored form of a version query: semver loses its leading ``v``.

    Other queries (``latest``, branch names, commits) are kept verbatim.
    """
    if raw[:1] == "v" and _SEMVER.match(raw[1:]):
        return raw[1:]
    return raw


def versioned_path(import_path: str, version: str) -> str:
    """``path@query`` for ``go get``; semver versions get their ``v`` back."""
    if not version:
        return import_path
    if _SEMVER.match(version):
        version = "v" + version
    return f"{import_path}@{version}"


class Package(BaseModel):
    """A Go module or package as listed on the package index."""

    name: str
    import_path: str
    description: str = ""
    version: str = ""               # semver without the "v", or a raw query

    # Derived from the local module cache, never trusted from disk.
    is_installed: bool = Field(default=False, exclude=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.import_path == other.import_path

    def __hash__(self) -> int:
        return hash(self.import_path)

    @property
    def versioned_path(self) -> str:
        """Import path with an ``@version`` query when a version is known."""
        return versioned_path(self.import_path, self.version)


class CacheEntry(BaseModel):
    """One cached search: the query, its ordered results, and when it was stored."""

    query: str
    results: list[Package] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_now)

    def age_seconds(self, now: datetime | None = None) -> float:
        now = now or _now()
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return (now - ts).total_seconds()
