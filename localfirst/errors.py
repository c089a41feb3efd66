"""Exceptions raised by sync and its collaborators."""


class SyncError(Exception):
    """Base class for every failure a sync can report."""


class NetworkError(SyncError):
    """The remote collection could not be fetched."""


class StoreError(SyncError):
    """A local read or write failed."""
