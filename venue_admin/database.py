"""Local sqlite storage for the session record and the degraded list cache."""

import datetime
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, List, Optional

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS session_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS degraded_cache (
    resource TEXT PRIMARY KEY,
    items_json TEXT NOT NULL,       -- JSON array of the last good page of records
    cached_at INTEGER NOT NULL
);
"""


def _now() -> int:
    return int(datetime.datetime.now(datetime.timezone.utc).timestamp())


class Database:
    """Handles database operations with proper connection management and error handling"""

    def __init__(self, db_file_path: str):
        self.db_file = db_file_path
        self.logger = logging.getLogger(self.__class__.__name__)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database with required tables"""
        try:
            with self._get_connection() as conn:
                conn.executescript(CREATE_TABLE_SQL)
                conn.commit()
                self.logger.info(f"Database initialized successfully: {self.db_file}")
        except sqlite3.Error as e:
            self.logger.critical(
                f"Failed to initialize database {self.db_file}: {str(e)}"
            )
            raise

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections with proper error handling"""
        conn = None
        try:
            conn = sqlite3.connect(self.db_file)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            self.logger.error(f"Database error ({self.db_file}): {str(e)}")
            raise
        finally:
            if conn:
                conn.close()

    # --- session_store ---

    def get_value(self, key: str) -> Optional[str]:
        """Get a value from the durable key/value store"""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM session_store WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set_value(self, key: str, value: str) -> None:
        """Insert or replace a value in the durable key/value store"""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO session_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, _now()),
            )
            conn.commit()
        self.logger.debug(f"Stored session key '{key}'")

    def delete_value(self, key: str) -> bool:
        """Delete a key; returns True if a row was removed"""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM session_store WHERE key = ?", (key,))
            conn.commit()
            removed = cursor.rowcount > 0
        if removed:
            self.logger.debug(f"Removed session key '{key}'")
        return removed

    # --- degraded_cache ---

    def save_cached_items(self, resource: str, items: List[Any]) -> None:
        """Replace the cached items for a resource"""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO degraded_cache (resource, items_json, cached_at) VALUES (?, ?, ?)
                ON CONFLICT(resource) DO UPDATE SET items_json = excluded.items_json, cached_at = excluded.cached_at
                """,
                (resource, json.dumps(items, default=str), _now()),
            )
            conn.commit()
        self.logger.debug(f"Cached {len(items)} '{resource}' items for degraded mode")

    def load_cached_items(self, resource: str) -> Optional[List[Any]]:
        """Load the cached items for a resource, or None if nothing was cached"""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT items_json FROM degraded_cache WHERE resource = ?", (resource,)
            ).fetchone()
        if not row:
            return None
        try:
            items = json.loads(row["items_json"])
        except json.JSONDecodeError as e:
            self.logger.error(f"Corrupt degraded cache for '{resource}': {e}")
            return None
        return items if isinstance(items, list) else None
