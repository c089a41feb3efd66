"""Data access objects over the persisted entity tables."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from typing import Generic, TypeVar

from ..errors import StoreError
from .db import Database

logger = logging.getLogger(__name__)

E = TypeVar("E")


class EntityDao(ABC, Generic[E]):
    """Store over one locally persisted entity collection, keyed by id."""

    @abstractmethod
    def stream_all(self) -> AsyncIterator[list[E]]:
        """Live sequence of the whole collection.

        Yields the current content first, then the content after every
        committed mutation, in commit order.
        """
        pass

    @abstractmethod
    async def upsert_all(self, entities: Iterable[E]) -> int:
        """Insert or replace the given entities by id in one transaction.

        Returns:
            Number of entities written.

        Raises:
            StoreError: If the write failed. Nothing is written in that case.
        """
        pass

    @abstractmethod
    def get_all(self) -> list[E]:
        """Current content of the collection."""
        pass


class SQLiteEntityDao(EntityDao[E]):
    """EntityDao backed by one table of a :class:`Database`.

    ``entity_type`` must provide ``TABLE``, ``columns()``, ``from_row()``
    and ``to_row()``.
    """

    def __init__(self, database: Database, entity_type: type[E]):
        self._db = database
        self.entity_type = entity_type
        self.table = entity_type.TABLE

        columns = entity_type.columns()
        placeholders = ", ".join("?" * len(columns))
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
        # ON CONFLICT keeps the rowid, so overwritten rows keep their position.
        self._upsert_sql = (
            f"INSERT INTO {self.table} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}"
        )
        self._select_sql = (
            f"SELECT {', '.join(columns)} FROM {self.table} ORDER BY rowid"
        )

    def get_all(self) -> list[E]:
        try:
            rows = self._db.conn.execute(self._select_sql).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read {self.table}: {e}") from e
        return [self.entity_type.from_row(row) for row in rows]

    def get_ids(self) -> list[str]:
        return [entity.id for entity in self.get_all()]

    def count(self) -> int:
        return self._db.count(self.table)

    async def stream_all(self) -> AsyncIterator[list[E]]:
        queue = self._db.observe(self.table)
        try:
            yield self.get_all()
            while True:
                yield await queue.get()
        finally:
            self._db.unobserve(self.table, queue)

    async def upsert_all(self, entities: Iterable[E]) -> int:
        rows = [entity.to_row() for entity in entities]
        if not rows:
            return 0

        conn = self._db.conn
        try:
            with conn:
                conn.executemany(self._upsert_sql, rows)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to upsert into {self.table}: {e}") from e

        logger.debug(f"Upserted {len(rows)} rows into {self.table}")

        if self._db.has_observers(self.table):
            self._db.notify(self.table, self.get_all())

        return len(rows)
