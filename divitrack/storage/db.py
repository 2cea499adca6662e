"""Key-value persistence for divitrack.

A thin wrapper around SQLite holding string blobs under string keys. The
application stores two JSON documents in it (holdings and the metadata
cache); the store itself knows nothing about their shape.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import List, Mapping, Optional, Union

from divitrack.utils.logging import get_logger

logger = get_logger("storage")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class KeyValueStore:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.init_db()

    def get_connection(self) -> sqlite3.Connection:
        """Return a connection to the SQLite database, creating it if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.path))
            conn.row_factory = sqlite3.Row
            return conn
        except sqlite3.OperationalError as e:
            logger.error(f"db_open_failed path={self.path} err={e}")
            raise

    def init_db(self) -> None:
        """Create the table if it does not exist."""
        conn = self.get_connection()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self.get_connection()
        try:
            cur = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cur.fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        """Insert or replace the blob stored under ``key``."""
        conn = self.get_connection()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?,?,?)",
                (key, value, datetime.now(UTC).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def set_many(self, items: Mapping[str, str]) -> None:
        """Write several blobs in one transaction; either all land or none do."""
        stamp = datetime.now(UTC).isoformat()
        conn = self.get_connection()
        try:
            with conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?,?,?)",
                    [(k, v, stamp) for k, v in items.items()],
                )
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def keys(self) -> List[str]:
        conn = self.get_connection()
        try:
            cur = conn.execute("SELECT key FROM kv_store ORDER BY key ASC")
            return [row["key"] for row in cur.fetchall()]
        finally:
            conn.close()
