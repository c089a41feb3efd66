"""Preference file holding per-kind change list versions."""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ..errors import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeListVersions:
    """How many remote items of each kind have been applied locally."""

    versions: dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        for kind, value in self.versions.items():
            if value < 0:
                raise ValueError(f"Version for {kind} must be >= 0, got {value}")

    def get(self, kind: str) -> int:
        """Version for ``kind``, 0 if never synced."""
        return self.versions.get(kind, 0)

    def copy_with(self, kind: str, value: int) -> "ChangeListVersions":
        return ChangeListVersions({**self.versions, kind: value})

    def to_dict(self) -> dict[str, Any]:
        return {"change_list_versions": dict(self.versions)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeListVersions":
        raw = data.get("change_list_versions", {}) or {}
        return cls({str(kind): int(value) for kind, value in raw.items()})


class VersionStore:
    """Durable store of :class:`ChangeListVersions` backed by a JSON file.

    Writes replace the file atomically. Each kind also has an
    ``asyncio.Lock`` that a sync holds from reading the version until the
    new version is written, so two syncs of one kind never interleave.

    Locks are held in memory, so one preferences file must only be written
    by one process at a time. Two processes syncing against the same file
    can overwrite each other's versions with stale values.
    """

    def __init__(self, path: str | Path):
        """Initialize the version store.

        Args:
            path: Location of the preferences file. Created on first write.
        """
        self.path = Path(path).expanduser()
        self._write_lock = asyncio.Lock()
        self._kind_locks: dict[str, asyncio.Lock] = {}

    def lock(self, kind: str) -> asyncio.Lock:
        """Lock guarding sync of ``kind``."""
        if kind not in self._kind_locks:
            self._kind_locks[kind] = asyncio.Lock()
        return self._kind_locks[kind]

    def get_versions(self) -> ChangeListVersions:
        """Read the current versions; all zero if nothing was written yet."""
        if not self.path.exists():
            return ChangeListVersions()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return ChangeListVersions.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise StoreError(f"Cannot read preferences {self.path}: {e}") from e

    async def update_versions(
        self, transform: Callable[[ChangeListVersions], ChangeListVersions]
    ) -> ChangeListVersions:
        """Apply ``transform`` to the stored versions and persist the result.

        Returns:
            The versions that were written.

        Raises:
            ValueError: If the transform produced a negative version.
            StoreError: If the file could not be read or written.
        """
        async with self._write_lock:
            # Rebuilt so a mutated versions dict is validated before writing.
            updated = ChangeListVersions(dict(transform(self.get_versions()).versions))
            self._write(updated)
        return updated

    async def update_version(self, kind: str, value: int) -> ChangeListVersions:
        """Persist ``value`` as the version of ``kind``.

        Raises:
            ValueError: If ``value`` is negative.
            StoreError: If the file could not be written.
        """
        if value < 0:
            raise ValueError(f"Version for {kind} must be >= 0, got {value}")
        versions = await self.update_versions(lambda v: v.copy_with(kind, value))
        logger.debug(f"Change list version of {kind} set to {value}")
        return versions

    def _write(self, versions: ChangeListVersions) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(versions.to_dict(), f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write preferences {self.path}: {e}") from e
