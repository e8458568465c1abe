"""
PostgreSQL-backed key-value store for the persisted layers.
"""

import logging
import os
from datetime import datetime
from typing import Optional, List

import psycopg2
from psycopg2.extensions import connection

from infrastructure.store import KeyValueStore

logger = logging.getLogger(__name__)


class PostgresStore(KeyValueStore):
    """
    PostgreSQL key-value store with UPSERT support.
    Each layer is one row; writes commit immediately.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "repodeck",
        user: str = "repodeck",
        password: str = "repodeck",
    ):
        """
        Initialize database client.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
        """
        # Allow environment variable overrides
        self.host = os.environ.get("DB_HOST", host)
        self.port = int(os.environ.get("DB_PORT", port))
        self.database = os.environ.get("DB_NAME", database)
        self.user = os.environ.get("DB_USER", user)
        self.password = os.environ.get("DB_PASSWORD", password)

        self._conn: Optional[connection] = None

    def connect(self):
        """Establish database connection."""
        if self._conn is None or self._conn.closed:
            logger.info(
                f"Connecting to database {self.database} at {self.host}:{self.port}"
            )
            self._conn = psycopg2.connect(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
            )
            logger.info("Database connection established")

    def close(self):
        """Close database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            logger.info("Database connection closed")

    def create_schema(self):
        """Create the key-value table if it doesn't exist."""
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT NOW()
                )
            """)

            self._conn.commit()
            logger.info("Database schema created successfully")

    def get_raw(self, key: str) -> Optional[str]:
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
            row = cursor.fetchone()

        return row[0] if row else None

    def set_raw(self, key: str, value: str):
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (%s, %s, %s)
                ON CONFLICT (key)
                DO UPDATE SET
                    value = EXCLUDED.value,
                    updated_at = EXCLUDED.updated_at
                """,
                (key, value, datetime.now()),
            )

            self._conn.commit()

        logger.debug(f"Stored {len(value)} bytes under '{key}'")

    def delete(self, key: str):
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("DELETE FROM kv_store WHERE key = %s", (key,))
            self._conn.commit()

    def keys(self) -> List[str]:
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("SELECT key FROM kv_store ORDER BY key")
            return [row[0] for row in cursor.fetchall()]
