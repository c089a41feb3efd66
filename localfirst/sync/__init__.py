"""Incremental sync of local collections against a remote source.

Each entity kind keeps a change list version: the number of remote items
already applied locally. Repositories use it to fetch and persist only the
unseen tail of the remote collection.
"""

from .repository import OfflineFirstRepository, SyncResult
from .scheduler import SyncScheduler

__all__ = ["OfflineFirstRepository", "SyncResult", "SyncScheduler"]
