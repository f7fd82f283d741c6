"""Durable multi-namespace key/value store backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path.home() / ".tubecache" / "cache.db"


class DurableStore:
    """Byte-oriented persistence partitioned by namespace.

    All calls are synchronous and serialized on one connection. The store
    knows nothing about expiry or sizes; that lives in the CacheEngine.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or _DEFAULT_DB_PATH
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._create_table()

    @property
    def path(self) -> Path:
        return self._db_path

    def put(self, namespace: str, key: str, data: bytes) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO store (namespace, key, data) VALUES (?, ?, ?)",
                (namespace, key, sqlite3.Binary(data)),
            )
            self._conn.commit()

    def get(self, namespace: str, key: str) -> bytes | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM store WHERE namespace = ? AND key = ?", (namespace, key)
            ).fetchone()
        return bytes(row[0]) if row is not None else None

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM store WHERE namespace = ? AND key = ?", (namespace, key)
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def keys(self, namespace: str) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM store WHERE namespace = ? ORDER BY key", (namespace,)
            ).fetchall()
        return [row[0] for row in rows]

    def items(self, namespace: str) -> Iterator[tuple[str, bytes]]:
        """Snapshot of (key, data) pairs in a namespace, ordered by key."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT key, data FROM store WHERE namespace = ? ORDER BY key", (namespace,)
            ).fetchall()
        for key, data in rows:
            yield key, bytes(data)

    def count(self, namespace: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM store WHERE namespace = ?", (namespace,)
            ).fetchone()
        return row[0]

    def clear(self, namespace: str) -> int:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM store WHERE namespace = ?", (namespace,))
            self._conn.commit()
        return cursor.rowcount

    def namespaces(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT DISTINCT namespace FROM store ORDER BY namespace"
            ).fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> DurableStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _create_table(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS store (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                data BLOB,
                PRIMARY KEY (namespace, key)
            )
        """)
        self._conn.commit()
