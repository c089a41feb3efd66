"""Small durable preferences: change list versions."""

from .preferences import ChangeListVersions, VersionStore

__all__ = ["ChangeListVersions", "VersionStore"]
