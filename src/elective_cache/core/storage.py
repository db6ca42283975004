"""
Persistent key/value namespace behind the cache store.
Why: mirrors browser localStorage (string values, shared namespace, byte quota)
so the store can be tested against memory and run against SQLite.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from .errors import StorageQuotaExceededError, StorageUnavailableError


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryStorage:
    """Dict-backed storage, one per test or per process."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self._items: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size(k, v) for k, v in self._items.items() if k != key)
            needed = used + _size(key, value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceededError(key, needed, self.quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class SQLiteStorage:
    """Single-table SQLite storage; survives restarts. Safe to share between threads."""

    _SCHEMA = "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"

    def __init__(self, path: Union[str, Path], quota_bytes: Optional[int] = None) -> None:
        self.path = Path(path)
        self.quota_bytes = quota_bytes
        self._lock = threading.Lock()
        try:
            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.execute(self._SCHEMA)
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"cannot open {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            try:
                row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise StorageUnavailableError(str(e)) from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                if self.quota_bytes is not None:
                    (used,) = self._conn.execute(
                        "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) "
                        "FROM kv WHERE key != ?",
                        (key,),
                    ).fetchone()
                    needed = used + _size(key, value)
                    if needed > self.quota_bytes:
                        raise StorageQuotaExceededError(key, needed, self.quota_bytes)
                self._conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                raise StorageUnavailableError(str(e)) from e

    def remove_item(self, key: str) -> None:
        with self._lock:
            try:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                self._conn.commit()
            except sqlite3.Error as e:
                raise StorageUnavailableError(str(e)) from e

    def keys(self) -> List[str]:
        with self._lock:
            try:
                rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            except sqlite3.Error as e:
                raise StorageUnavailableError(str(e)) from e
        return [r[0] for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def build_storage(backend: str, db_path: str, quota_bytes: Optional[int] = None) -> KeyValueStorage:
    if backend == "memory":
        return MemoryStorage(quota_bytes=quota_bytes)
    if backend == "sqlite":
        return SQLiteStorage(db_path, quota_bytes=quota_bytes)
    raise ValueError(f"unknown cache backend: {backend!r}")
