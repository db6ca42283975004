"""Shared fixtures: a controllable clock and an isolated store per test."""

import pytest

from elective_cache.core.cache import TTLCacheStore
from elective_cache.core.metrics import _Metrics
from elective_cache.core.storage import MemoryStorage


class FakeClock:
    def __init__(self, start_ms: int = 0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock(start_ms=1_700_000_000_000)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cache_metrics():
    return _Metrics()


@pytest.fixture
def store(storage, clock, cache_metrics):
    return TTLCacheStore(storage, clock=clock, metrics=cache_metrics)
