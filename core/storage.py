"""
Device-local persistent storage (the front end's equivalent of browser local storage).

Each device gets its own namespace; values are plain strings.
"""
from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

TOKEN_KEY = "token"
TOKEN_EXPIRY_KEY = "tokenExpiry"
USER_KEY = "user"


class DeviceStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """Dict-backed storage; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> Dict[str, str]:
        return dict(self._items)


_init_lock = threading.Lock()
_initialised_paths: set[str] = set()


def init_storage(database_path: str) -> None:
    """Create the storage table if needed (idempotent)."""
    with _init_lock:
        if database_path in _initialised_paths:
            return
        conn = sqlite3.connect(database_path)
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS device_storage (
                device_id TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (device_id, key)
            )
            """
        )
        conn.commit()
        conn.close()
        _initialised_paths.add(database_path)


class SqliteStorage:
    """Storage namespace for one device inside a shared SQLite file."""

    def __init__(self, database_path: str, device_id: str):
        if not device_id:
            raise ValueError("device_id is required")
        self.database_path = database_path
        self.device_id = device_id
        init_storage(database_path)

    def get_item(self, key: str) -> Optional[str]:
        conn = sqlite3.connect(self.database_path)
        cur = conn.cursor()
        cur.execute(
            "SELECT value FROM device_storage WHERE device_id = ? AND key = ?",
            (self.device_id, key),
        )
        row = cur.fetchone()
        conn.close()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        conn = sqlite3.connect(self.database_path)
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO device_storage (device_id, key, value, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (device_id, key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (self.device_id, key, str(value), now),
        )
        conn.commit()
        conn.close()

    def remove_item(self, key: str) -> None:
        conn = sqlite3.connect(self.database_path)
        cur = conn.cursor()
        cur.execute(
            "DELETE FROM device_storage WHERE device_id = ? AND key = ?",
            (self.device_id, key),
        )
        conn.commit()
        conn.close()

    def clear(self) -> None:
        conn = sqlite3.connect(self.database_path)
        cur = conn.cursor()
        cur.execute("DELETE FROM device_storage WHERE device_id = ?", (self.device_id,))
        conn.commit()
        conn.close()


__all__ = [
    "TOKEN_KEY",
    "TOKEN_EXPIRY_KEY",
    "USER_KEY",
    "DeviceStorage",
    "MemoryStorage",
    "SqliteStorage",
    "init_storage",
]
