"""Tests for the key/value storage backends."""

import pytest

from elective_cache.core.errors import StorageQuotaExceededError
from elective_cache.core.storage import MemoryStorage, SQLiteStorage, build_storage


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield MemoryStorage()
        return
    storage = SQLiteStorage(tmp_path / "cache.sqlite3")
    yield storage
    storage.close()


def test_get_missing_returns_none(backend):
    assert backend.get_item("nope") is None


def test_set_get_remove(backend):
    backend.set_item("degrees", '{"payload": [], "writtenAt": 1}')
    assert backend.get_item("degrees") == '{"payload": [], "writtenAt": 1}'
    backend.remove_item("degrees")
    assert backend.get_item("degrees") is None


def test_remove_missing_is_noop(backend):
    backend.remove_item("nope")
    assert backend.keys() == []


def test_set_overwrites(backend):
    backend.set_item("k", "one")
    backend.set_item("k", "two")
    assert backend.get_item("k") == "two"
    assert backend.keys() == ["k"]


def test_keys_lists_everything(backend):
    backend.set_item("b", "1")
    backend.set_item("a", "2")
    assert sorted(backend.keys()) == ["a", "b"]


def test_memory_quota():
    storage = MemoryStorage(quota_bytes=10)
    storage.set_item("k", "12345")
    with pytest.raises(StorageQuotaExceededError):
        storage.set_item("k2", "123456789")
    assert storage.get_item("k2") is None


def test_memory_quota_counts_replaced_value_once():
    storage = MemoryStorage(quota_bytes=10)
    storage.set_item("k", "123456789")
    storage.set_item("k", "987654321")
    assert storage.get_item("k") == "987654321"


def test_sqlite_quota(tmp_path):
    storage = SQLiteStorage(tmp_path / "q.sqlite3", quota_bytes=10)
    storage.set_item("k", "12345")
    with pytest.raises(StorageQuotaExceededError):
        storage.set_item("k2", "123456789")
    storage.close()


def test_sqlite_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "cache.sqlite3"
    first = SQLiteStorage(path)
    first.set_item("groups", "[]")
    first.close()
    second = SQLiteStorage(path)
    assert second.get_item("groups") == "[]"
    second.close()


def test_build_storage(tmp_path):
    assert isinstance(build_storage("memory", ""), MemoryStorage)
    sqlite = build_storage("sqlite", str(tmp_path / "c.sqlite3"))
    assert isinstance(sqlite, SQLiteStorage)
    sqlite.close()
    with pytest.raises(ValueError):
        build_storage("redis", "")
