"""
Key-value storage for terminal-local state.

The local order queue, parked orders, and any other state that must survive
a restart of the terminal are stored as JSON documents under string keys.
Keeping the interface this small lets the queue stay storage-engine agnostic:

    - MemoryKeyValueStore: process memory, used by tests
    - SqliteKeyValueStore: single-file SQLite database, used in production

Usage:
    store = SqliteKeyValueStore("data/terminal.db")
    store.set("pending_orders", [...])
    entries = store.get("pending_orders", [])
"""

from __future__ import annotations

import copy
import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from .exceptions import StorageError


class KeyValueStore:
    """
    Minimal persistent key space.

    Values must be JSON-serializable. Implementations are thread-safe: the
    debounced queue writer runs on a timer thread while requests read.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default if absent."""
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        raise NotImplementedError

    def keys(self) -> List[str]:
        """Return all stored keys."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any underlying resources."""


class MemoryKeyValueStore(KeyValueStore):
    """
    In-memory key-value store.

    Values are deep-copied on the way in and out so callers cannot mutate the
    stored document by accident (mirrors serialize/deserialize semantics).

    Attributes:
        write_count: Number of set() calls, used to observe write coalescing
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self.write_count = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        try:
            # Reject values the on-disk store would reject
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(key, f"value is not JSON-serializable: {e}")

        with self._lock:
            self._data[key] = copy.deepcopy(value)
            self.write_count += 1

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)


class SqliteKeyValueStore(KeyValueStore):
    """
    SQLite-backed key-value store.

    One table, one row per key, value stored as JSON text. Every set() runs in
    its own transaction so a crash never leaves a half-written document.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()

        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            # Writes arrive from the debounce timer thread as well as request threads
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._bootstrap_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(db_path, f"cannot open database: {e}")

    def _bootstrap_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(key, str(e))

        if row is None:
            return default

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(key, f"stored value is not valid JSON: {e}")

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(key, f"value is not JSON-serializable: {e}")

        updated_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        """
                        INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                       updated_at = excluded.updated_at
                        """,
                        (key, payload, updated_at),
                    )
            except sqlite3.Error as e:
                raise StorageError(key, str(e))

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StorageError(key, str(e))

    def keys(self) -> List[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def create_store(db_path: str) -> KeyValueStore:
    """Build the store for a configured path (":memory:" selects the memory store)."""
    if db_path == ":memory:":
        return MemoryKeyValueStore()
    return SqliteKeyValueStore(db_path)
