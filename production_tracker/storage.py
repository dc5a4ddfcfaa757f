"""SQLite-backed persistence helpers for the tracking system."""

from __future__ import annotations

import sqlite3
from typing import Iterator, Optional

from .repository import OrderRepository


class SQLiteDocumentStore:
    """Key-value store keeping JSON documents inside a SQLite table."""

    def __init__(self, connection: sqlite3.Connection, table: str = "documents") -> None:
        self._connection = connection
        self._table = table
        self._connection.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
            "key TEXT PRIMARY KEY, payload TEXT NOT NULL)"
        )
        self._connection.commit()

    def __iter__(self) -> Iterator[str]:
        cursor = self._connection.execute(f"SELECT key FROM {self._table} ORDER BY key")
        return iter([row[0] for row in cursor.fetchall()])

    def read(self, key: str) -> Optional[str]:
        cursor = self._connection.execute(
            f"SELECT payload FROM {self._table} WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        return row[0] if row is not None else None

    def write(self, key: str, text: str) -> None:
        self._connection.execute(
            f"INSERT INTO {self._table} (key, payload) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET payload = excluded.payload",
            (key, text),
        )
        self._connection.commit()

    def delete(self, key: str) -> None:
        self._connection.execute(f"DELETE FROM {self._table} WHERE key = ?", (key,))
        self._connection.commit()


class TrackerDatabase:
    """Convenience facade bundling the SQLite store and the order repository."""

    def __init__(self, path: str) -> None:
        connection = sqlite3.connect(path, check_same_thread=False)
        self._connection = connection
        self.documents = SQLiteDocumentStore(connection)
        self.orders = OrderRepository(self.documents)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "TrackerDatabase":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[BaseException],
    ) -> None:
        self.close()


__all__ = ["SQLiteDocumentStore", "TrackerDatabase"]
