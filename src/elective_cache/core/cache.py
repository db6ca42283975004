"""
Read-through TTL cache over a persistent key/value namespace.
Why: screens ask one place for fresh reference data before paying for a round trip,
and realtime change events tell one place that a key is stale.

The store is a pure optimization: storage and decoding failures degrade to a
miss and are never raised. Remote fetch failures always reach the caller.
"""

import fnmatch
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .errors import StorageError
from .logging import get_logger
from .metrics import _Metrics, metrics as default_metrics
from .schemas import CacheEntry, StoredEnvelope
from .storage import KeyValueStorage, MemoryStorage

_LOG = get_logger(__name__)

Clock = Callable[[], int]
FetchFn = Callable[[], Awaitable[Any]]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TTLCacheStore:
    """Get/set/invalidate over ``storage`` with freshness checked on read.

    Args:
        storage: shared namespace; defaults to a fresh ``MemoryStorage``.
        clock: milliseconds since epoch; inject a fake one in tests.
        metrics: counters to update; defaults to the process-wide collector.
        strict_generations: when set, a fetch that was in flight while its key
            was invalidated does not write its result back.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        clock: Clock = wall_clock_ms,
        metrics: Optional[_Metrics] = None,
        strict_generations: bool = False,
    ) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self._clock = clock
        self._metrics = metrics if metrics is not None else default_metrics
        self.strict_generations = strict_generations
        self._generations: Dict[str, int] = {}
        self._in_flight: Dict[str, int] = {}

    def get(self, key: str, ttl_ms: int) -> Optional[CacheEntry]:
        try:
            raw = self.storage.get_item(key)
        except StorageError as e:
            self._storage_failed("read", key, e)
            self._metrics.record_miss()
            return None
        if raw is None:
            self._metrics.record_miss()
            return None
        try:
            envelope = StoredEnvelope.model_validate_json(raw)
        except ValidationError as e:
            _LOG.warning(
                f"corrupt cache record treated as miss: {e.error_count()} error(s)",
                extra={"cache_key": key, "cache_op": "get"},
            )
            self._metrics.record_miss()
            return None
        entry = CacheEntry(key=key, payload=envelope.payload, written_at=envelope.written_at)
        if not entry.is_fresh(self._clock(), ttl_ms):
            _LOG.debug("stale cache record", extra={"cache_key": key, "cache_op": "get", "ttl_ms": ttl_ms})
            self._metrics.record_miss()
            return None
        self._metrics.record_hit()
        return entry

    def set(self, key: str, payload: Any) -> None:
        """Store ``payload`` stamped with now.

        Encoding is plain JSON, so NaN reads back as null and int dict keys
        read back as strings.
        """
        envelope = StoredEnvelope(payload=payload, written_at=self._clock())
        try:
            raw = envelope.to_json()
        except (TypeError, ValueError) as e:
            _LOG.warning(f"payload not serializable, not cached: {e}", extra={"cache_key": key, "cache_op": "set"})
            self._metrics.record_storage_error()
            return
        try:
            self.storage.set_item(key, raw)
        except StorageError as e:
            self._storage_failed("write", key, e)
            return
        self._metrics.record_write()
        _LOG.debug("cache write", extra={"cache_key": key, "cache_op": "set"})

    def has(self, key: str) -> bool:
        """Whether a record (fresh or not) is stored under ``key``."""
        try:
            return self.storage.get_item(key) is not None
        except StorageError as e:
            self._storage_failed("read", key, e)
            return False

    def invalidate(self, key: str) -> None:
        self._bump(key)
        try:
            self.storage.remove_item(key)
        except StorageError as e:
            self._storage_failed("remove", key, e)
            return
        self._metrics.record_invalidation()
        _LOG.debug("cache invalidated", extra={"cache_key": key, "cache_op": "invalidate"})

    def invalidate_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.invalidate(key)

    def invalidate_matching(self, pattern: str) -> List[str]:
        """Invalidate every stored key matching the glob ``pattern``; returns those keys."""
        try:
            stored = self.storage.keys()
        except StorageError as e:
            self._storage_failed("list", pattern, e)
            return []
        matched = [k for k in stored if fnmatch.fnmatchcase(k, pattern)]
        # In-flight keys may not be stored yet; only those are tracked.
        for key in self._generations:
            if key not in matched and fnmatch.fnmatchcase(key, pattern):
                self._bump(key)
        self.invalidate_many(matched)
        return matched

    async def get_or_fetch(self, key: str, ttl_ms: int, fetch_fn: FetchFn) -> Any:
        entry = self.get(key, ttl_ms)
        if entry is not None:
            return entry.payload

        if not self.strict_generations:
            result = await fetch_fn()
            self.set(key, result)
            return result

        generation = self._track(key)
        try:
            result = await fetch_fn()
            current = self._generations[key]
        finally:
            self._untrack(key)

        if current != generation:
            _LOG.info(
                "discarding fetch result, key invalidated while in flight",
                extra={"cache_key": key, "cache_op": "get_or_fetch"},
            )
            return result
        self.set(key, result)
        return result

    def generation(self, key: str) -> int:
        """Current generation of a key with a fetch in flight; 0 otherwise."""
        return self._generations.get(key, 0)

    def in_flight(self) -> int:
        """Number of keys with a strict-mode fetch in flight."""
        return len(self._in_flight)

    def _track(self, key: str) -> int:
        self._in_flight[key] = self._in_flight.get(key, 0) + 1
        return self._generations.setdefault(key, 0)

    def _untrack(self, key: str) -> None:
        remaining = self._in_flight[key] - 1
        if remaining:
            self._in_flight[key] = remaining
            return
        del self._in_flight[key]
        del self._generations[key]

    def _bump(self, key: str) -> None:
        # Only in-flight fetches compare generations.
        if key in self._generations:
            self._generations[key] += 1

    def _storage_failed(self, op: str, key: str, error: StorageError) -> None:
        self._metrics.record_storage_error()
        _LOG.warning(f"cache storage {op} failed: {error}", extra={"cache_key": key, "cache_op": op})
