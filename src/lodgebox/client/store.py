"""Durable key-value store backing the outbox.

This module provides:
- OutboxStore: SQLite-based asynchronous key-value store
- StoreError: Raised when the underlying database fails

Architecture:
    Values are JSON-encoded and kept in a single ``kv`` table. The database
    file is shared by the interactive application and the background worker,
    so every operation commits immediately (autocommit + WAL).

    There is no compare-and-swap: concurrent writers to the same key race,
    and the last write wins. Callers that read-modify-write must re-read
    right before writing to keep the window small.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the outbox store cannot be read or written."""


class OutboxStore:
    """SQLite-based key-value store with an async interface.

    Blocking sqlite calls run in a worker thread and are serialized
    by a re-entrant lock, so one store can be shared by many coroutines.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the store database.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StoreError: If the file is not a usable database.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        try:
            # WAL lets the worker read while the app writes
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        except sqlite3.Error as e:
            self._conn.close()
            raise StoreError(f"Cannot open outbox store at {self._db_path}: {e}") from e
        logger.debug("Opened outbox store at %s", self._db_path)

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # === Blocking primitives (run in a thread) ===

    def _read(self, key: str) -> Any | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value FROM kv WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to read {key!r}: {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except ValueError as e:
            raise StoreError(f"Corrupted value for {key!r}: {e}") from e

    def _write(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key!r} is not serializable: {e}") from e
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    (key, encoded),
                )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to write {key!r}: {e}") from e

    def _delete(self, key: str) -> None:
        with self._lock:
            try:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StoreError(f"Failed to delete {key!r}: {e}") from e

    def _keys(self) -> list[str]:
        with self._lock:
            try:
                rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to list keys: {e}") from e
        return [row["key"] for row in rows]

    # === Async API ===

    async def read(self, key: str) -> Any | None:
        """Read a value.

        Args:
            key: Storage key.

        Returns:
            The decoded value, or None if the key is absent.

        Raises:
            StoreError: If the database fails or the value is corrupted.
        """
        return await asyncio.to_thread(self._read, key)

    async def write(self, key: str, value: Any) -> None:
        """Write a JSON-serializable value, replacing any previous one."""
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error."""
        await asyncio.to_thread(self._delete, key)

    async def keys(self) -> list[str]:
        """List stored keys in sorted order."""
        return await asyncio.to_thread(self._keys)
