"""Local-first collections kept in sync with a remote source."""

from .errors import NetworkError, StoreError, SyncError
from .kinds import AUTHORS, TOPICS, EntityKind
from .sync import OfflineFirstRepository, SyncResult, SyncScheduler

__version__ = "0.1.0"

__all__ = [
    "AUTHORS",
    "EntityKind",
    "NetworkError",
    "OfflineFirstRepository",
    "StoreError",
    "SyncError",
    "SyncResult",
    "SyncScheduler",
    "TOPICS",
]
