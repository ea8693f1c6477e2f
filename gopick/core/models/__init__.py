"""
Domain models for gopick.

All models are re-exported here for convenient access:

    from gopick.core.models import Package, CacheEntry, HistoryEntry, SessionState
"""

from gopick.core.models.history import HistoryAction, HistoryEntry
from gopick.core.models.package import CacheEntry, Package
from gopick.core.models.session import MessageKind, SessionState, View

__all__ = [
    # package.py
    "CacheEntry",
    "Package",
    # history.py
    "HistoryAction",
    "HistoryEntry",
    # session.py
    "MessageKind",
    "SessionState",
    "View",
]
