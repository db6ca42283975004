"""Cache core: store, storage backends, schemas and observability."""

from .cache import TTLCacheStore, wall_clock_ms
from .errors import (
    CacheError,
    RemoteQueryError,
    StorageError,
    StorageQuotaExceededError,
    StorageUnavailableError,
)
from .keys import domain_patterns, make_key
from .schemas import CacheEntry, ChangeEvent
from .storage import KeyValueStorage, MemoryStorage, SQLiteStorage, build_storage

__all__ = [
    "TTLCacheStore",
    "wall_clock_ms",
    "CacheError",
    "RemoteQueryError",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageUnavailableError",
    "domain_patterns",
    "make_key",
    "CacheEntry",
    "ChangeEvent",
    "KeyValueStorage",
    "MemoryStorage",
    "SQLiteStorage",
    "build_storage",
]
