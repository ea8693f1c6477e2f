"""
HistoryEntry — one line of the activity log.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class HistoryAction(str, Enum):
    VIEWED = "viewed"
    INSTALLED = "installed"


class HistoryEntry(BaseModel):
    """A package the user looked at or installed."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    package: str
    import_path: str
    action: HistoryAction

    def matches(self, package: str, import_path: str, action: HistoryAction) -> bool:
        return (
            self.package == package
            and self.import_path == import_path
            and self.action == action
        )
