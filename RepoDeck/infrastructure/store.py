"""
Key-value stores for the persisted layers.
Values are JSON-serialized strings keyed by layer name.
"""

import json
import logging
import os
import sqlite3
from datetime import datetime
from typing import Any, Optional

from core.errors import ParseError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    String-keyed store of JSON values.

    Backends implement the raw string operations; JSON handling and
    recovery from corrupt values live here.
    """

    def connect(self):
        """Open the backend. Idempotent."""

    def close(self):
        """Release the backend."""

    def create_schema(self):
        """Create backing tables. Nothing to do for schemaless backends."""

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_raw(self, key: str, value: str):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError

    def get(self, key: str, default: Any = None) -> Any:
        """
        Read and decode a value.

        A corrupt stored value is logged and treated as missing.
        """
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            return decode_value(raw)
        except ParseError as e:
            logger.warning(f"Ignoring corrupt value for '{key}': {e}")
            return default

    def set(self, key: str, value: Any):
        self.set_raw(key, json.dumps(value))


def decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(str(e)) from e


class MemoryStore(KeyValueStore):
    """In-process store; nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_raw(self, key: str, value: str):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteStore(KeyValueStore):
    """Single-file SQLite store, the default for local use."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or os.environ.get("STORE_PATH") or "repodeck.db"
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self):
        """Open the database and make sure the table exists."""
        if self._conn is None:
            logger.debug(f"Opening SQLite store at {self.db_path}")
            self._conn = sqlite3.connect(self.db_path)
            self.create_schema()

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def create_schema(self):
        self.connect()
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self._conn.commit()

    def get_raw(self, key: str) -> Optional[str]:
        self.connect()
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def set_raw(self, key: str, value: str):
        self.connect()
        self._conn.execute(
            """
            INSERT OR REPLACE INTO kv_store (key, value, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, value, datetime.now().isoformat()),
        )
        self._conn.commit()

    def delete(self, key: str):
        self.connect()
        self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self._conn.commit()

    def keys(self) -> list[str]:
        self.connect()
        rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row[0] for row in rows]


def open_store(backend: Optional[str] = None, path: Optional[str] = None) -> KeyValueStore:
    """
    Build the store selected by argument or the STORE_BACKEND env var.

    Args:
        backend: "sqlite" (default), "postgres" or "memory"
        path: SQLite file path (or uses STORE_PATH env var)

    Raises:
        ValueError: For an unknown backend
    """
    backend = (backend or os.environ.get("STORE_BACKEND") or "sqlite").lower()

    if backend == "sqlite":
        return SqliteStore(path)
    if backend == "postgres":
        from infrastructure.db_client import PostgresStore
        return PostgresStore()
    if backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown store backend: {backend}")
