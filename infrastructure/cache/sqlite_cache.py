"""
SQLite-backed local cache.

Implements the LocalCache protocol as a single key/value table in a local
SQLite file, so values written while offline survive process restarts.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union
import logging
import sqlite3

from application.exceptions import LocalCacheError

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SqliteLocalCache:
    """
    Persistent key -> JSON blob store.

    A connection is opened per operation for file databases. An in-memory
    database keeps one shared connection, since each new connection would
    see an empty database.
    """

    def __init__(self, path: Union[str, Path] = IN_MEMORY):
        """
        Args:
            path: SQLite file path, or ":memory:" for a process-local cache
        """
        self._path = str(path)
        self._shared: Optional[sqlite3.Connection] = None
        if self._path == IN_MEMORY:
            self._shared = sqlite3.connect(IN_MEMORY)
        else:
            Path(self._path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self._path = str(Path(self._path).expanduser())
        with self._connection() as conn:
            conn.execute(_SCHEMA)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._shared or sqlite3.connect(self._path)
        except sqlite3.Error as e:
            raise LocalCacheError(f"Cannot open local cache {self._path}: {e}") from e
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise LocalCacheError(f"Local cache operation failed: {e}") from e
        finally:
            if conn is not self._shared:
                conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                (key, value, now),
            )
        logger.debug(f"Stored {key} in local cache")

    def delete(self, key: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None
