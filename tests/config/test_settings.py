"""Tests for environment-driven settings."""

import pytest

from elective_cache.config.settings import DEFAULT_TTL_SECONDS, CacheSettings, RemoteSettings


def test_defaults(monkeypatch):
    for name in ("CACHE_BACKEND", "CACHE_STRICT_GENERATIONS", "CACHE_TTL_CATALOG_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    cache = CacheSettings()
    assert cache.backend == "memory"
    assert cache.strict_generations is False
    assert cache.ttl_ms("catalog") == DEFAULT_TTL_SECONDS["catalog"] * 1000


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_BACKEND", "sqlite")
    monkeypatch.setenv("CACHE_STRICT_GENERATIONS", "true")
    monkeypatch.setenv("CACHE_TTL_PROFILE_SECONDS", "15")
    cache = CacheSettings()
    assert cache.backend == "sqlite"
    assert cache.strict_generations is True
    assert cache.ttl_ms("profile") == 15_000


def test_unknown_ttl_class():
    with pytest.raises(KeyError):
        CacheSettings().ttl_ms("forever")


def test_remote_settings(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://db.example.co")
    monkeypatch.setenv("SUPABASE_TIMEOUT", "2.5")
    remote = RemoteSettings()
    assert remote.supabase_url == "https://db.example.co"
    assert remote.timeout_seconds == 2.5
