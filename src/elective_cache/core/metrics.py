"""
In-memory metrics for /metrics: request latency (rough p50/p95) and cache counters.
Why: see hit ratio and storage failures without running Prometheus.
"""

from collections import deque
from typing import Deque, Dict, List

_MAX_LATENCY_SAMPLES = 1000


def _percentile(values: List[int], p: float) -> int:
    if not values:
        return 0
    idx = max(0, min(len(values) - 1, int(len(values) * p)))
    return sorted(values)[idx]


class _Metrics:
    def __init__(self) -> None:
        self.total_requests = 0
        self.total_errors = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.cache_writes = 0
        self.cache_invalidations = 0
        self.storage_errors = 0
        self.remote_errors = 0
        self._latencies: Deque[int] = deque(maxlen=_MAX_LATENCY_SAMPLES)

    def increment_requests(self) -> None:
        self.total_requests += 1

    def increment_errors(self) -> None:
        self.total_errors += 1

    def record_latency(self, ms: int) -> None:
        self._latencies.append(ms)

    def record_hit(self) -> None:
        self.cache_hits += 1

    def record_miss(self) -> None:
        self.cache_misses += 1

    def record_write(self) -> None:
        self.cache_writes += 1

    def record_invalidation(self, count: int = 1) -> None:
        self.cache_invalidations += count

    def record_storage_error(self) -> None:
        self.storage_errors += 1

    def record_remote_error(self) -> None:
        self.remote_errors += 1

    def hit_ratio(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    def snapshot(self) -> Dict[str, float]:
        lat = list(self._latencies)
        return {
            "total_requests": self.total_requests,
            "total_errors": self.total_errors,
            "p50_ms": _percentile(lat, 0.50),
            "p95_ms": _percentile(lat, 0.95),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_writes": self.cache_writes,
            "cache_invalidations": self.cache_invalidations,
            "storage_errors": self.storage_errors,
            "remote_errors": self.remote_errors,
            "hit_ratio": round(self.hit_ratio(), 4),
        }


metrics = _Metrics()
