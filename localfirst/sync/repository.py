"""Offline-first repository: a live local collection kept in sync with a remote.

Sync is incremental. The remote collection is treated as an append-only
log and the kind's change list version is the number of remote items
already applied locally. A sync fetches the full collection, upserts only
the items past that offset, then advances the version to the collection
length. The version is written last, so after a crash local data may be
ahead of the version but never behind it; the next sync re-applies those
items, which is harmless because upserts replace by id.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..database.dao import EntityDao
from ..datastore.preferences import VersionStore
from ..errors import NetworkError
from ..kinds import EntityKind
from ..network.source import RemoteSource

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a successful sync of one kind."""

    kind: str
    previous_version: int
    version: int
    applied: int = 0
    timestamp: datetime | None = None

    @property
    def changed(self) -> bool:
        return self.applied > 0


class OfflineFirstRepository:
    """Repository for one entity kind backed by a local DAO."""

    def __init__(
        self,
        kind: EntityKind,
        dao: EntityDao,
        network: RemoteSource,
        versions: VersionStore,
    ):
        """Initialize the repository.

        Args:
            kind: The entity kind served by this repository.
            dao: Local store of the kind's persisted entities.
            network: Remote source of the full collection.
            versions: Store of change list versions, shared between repositories.
        """
        self.kind = kind
        self._dao = dao
        self._network = network
        self._versions = versions

    async def stream(self) -> AsyncIterator[list[Any]]:
        """Live sequence of the local collection as external models.

        Emits the current content first, then again after every committed
        write to the local store. Sync failures never end the stream.
        """
        async with aclosing(self._dao.stream_all()) as entities_stream:
            async for entities in entities_stream:
                yield [entity.as_external_model() for entity in entities]

    async def sync(self, timeout: float | None = None) -> SyncResult:
        """Apply remote items not seen yet and advance the change list version.

        Concurrent calls for the same kind run one after the other.

        Args:
            timeout: Optional limit in seconds on the remote fetch.

        Returns:
            SyncResult describing what was applied.

        Raises:
            NetworkError: If the remote fetch failed or timed out.
            StoreError: If reading or writing local state failed.
        """
        kind = self.kind.name

        async with self._versions.lock(kind):
            version = self._versions.get_versions().get(kind)

            try:
                remote = await asyncio.wait_for(
                    self._network.fetch_all(self.kind), timeout
                )
            except asyncio.TimeoutError as e:
                raise NetworkError(
                    f"Fetching {self.kind.remote_path} timed out after {timeout}s"
                ) from e

            unseen = remote[version:]
            if not unseen:
                logger.debug(
                    f"{kind}: up to date at version {version} "
                    f"({len(remote)} remote items)"
                )
                return SyncResult(
                    kind=kind,
                    previous_version=version,
                    version=version,
                    timestamp=datetime.now(),
                )

            applied = await self._dao.upsert_all(
                item.as_entity() for item in unseen
            )

            new_version = len(remote)
            await self._versions.update_version(kind, new_version)

        logger.info(
            f"{kind}: applied {applied} items, version {version} -> {new_version}",
            extra={"kind": kind},
        )

        return SyncResult(
            kind=kind,
            previous_version=version,
            version=new_version,
            applied=applied,
            timestamp=datetime.now(),
        )
