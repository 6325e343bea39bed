"""
Persistent Store: local key/value durability for player progress.

Behavioral Contract:
- Synchronous. Every write is committed before the call returns.
- Keys are plain strings; callers namespace their own keys.
- All storage failures surface as PersistenceError, never raw sqlite errors.
"""

import logging
import sqlite3
from typing import Dict, List, Optional

from questline.errors import PersistenceError

logger = logging.getLogger(__name__)


class PersistentStore:
    """
    SQLite-backed key/value store.
    ``:memory:`` keeps data for the lifetime of the object only.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._init_schema()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open store at {db_path}: {e}") from e

    def _init_schema(self) -> None:
        """Create the key/value table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self._conn.commit()

    def get(self, key: str) -> Optional[str]:
        """Read a value, or None if the key was never written."""
        try:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Read failed for {key}: {e}") from e
        return row[0] if row else None

    def get_many(self, keys: List[str]) -> Dict[str, Optional[str]]:
        return {key: self.get(key) for key in keys}

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Dict[str, str]) -> None:
        """Write several keys in one transaction."""
        try:
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO kv (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    list(items.items()),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Write failed for {sorted(items)}: {e}") from e

    def delete(self, key: str) -> bool:
        """Remove a key. Returns whether it existed."""
        try:
            with self._conn:
                cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Delete failed for {key}: {e}") from e
        return cursor.rowcount > 0

    def keys(self, prefix: str = "") -> List[str]:
        """All keys starting with ``prefix``, sorted."""
        try:
            rows = self._conn.execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Key scan failed: {e}") from e
        return [r[0] for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
