"""SQLite database holding the locally persisted collections."""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..errors import StoreError

logger = logging.getLogger(__name__)

# One table per entity kind, keyed by the remote id.
SCHEMA = """
CREATE TABLE IF NOT EXISTS authors (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    image_url TEXT NOT NULL DEFAULT '',
    twitter TEXT NOT NULL DEFAULT '',
    medium_page TEXT NOT NULL DEFAULT '',
    bio TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    short_description TEXT NOT NULL DEFAULT '',
    long_description TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL DEFAULT '',
    image_url TEXT NOT NULL DEFAULT ''
);
"""

TABLES = ("authors", "topics")


class Database:
    """SQLite connection plus change notification for table observers."""

    def __init__(self, db_path: str | Path):
        """Initialize the database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        self._observers: dict[str, set[asyncio.Queue]] = {}

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._conn is not None:
            return

        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

        logger.info(f"Database connected to {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Connection, opened on first use."""
        if self._conn is None:
            self.connect()
        return self._conn

    def observe(self, table: str) -> asyncio.Queue:
        """Register a queue that receives a snapshot after each commit to ``table``."""
        queue: asyncio.Queue = asyncio.Queue()
        self._observers.setdefault(table, set()).add(queue)
        return queue

    def unobserve(self, table: str, queue: asyncio.Queue) -> None:
        self._observers.get(table, set()).discard(queue)

    def has_observers(self, table: str) -> bool:
        return bool(self._observers.get(table))

    def notify(self, table: str, snapshot: Any) -> None:
        for queue in list(self._observers.get(table, ())):
            queue.put_nowait(snapshot)

    def count(self, table: str) -> int:
        try:
            row = self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot count {table}: {e}") from e
        return row[0]

    def get_stats(self) -> dict[str, Any]:
        """Get row counts per table and file size."""
        stats: dict[str, Any] = {
            "counts": {table: self.count(table) for table in TABLES},
        }

        if not self.in_memory and self.db_path.exists():
            stats["db_size_mb"] = round(
                self.db_path.stat().st_size / (1024 * 1024), 2
            )

        return stats
