"""Configuration settings for the cache and its remote collaborators."""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

# Try to load .env manually if not loaded
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


# Seconds per TTL class; values follow what each screen used to hard-code.
DEFAULT_TTL_SECONDS: Dict[str, int] = {
    "profile": 60,
    "selections": 5 * 60,
    "settings": 5 * 60,
    "reference": 30 * 60,
    "catalog": 60 * 60,
    "branding": 30 * 24 * 60 * 60,
}


def _ttl_from_env() -> Dict[str, int]:
    return {
        name: _env_int(f"CACHE_TTL_{name.upper()}_SECONDS", seconds)
        for name, seconds in DEFAULT_TTL_SECONDS.items()
    }


@dataclass
class CacheSettings:
    backend: str = field(default_factory=lambda: os.getenv("CACHE_BACKEND", "memory"))
    # Only used by the sqlite backend
    db_path: str = field(default_factory=lambda: os.getenv("CACHE_DB_PATH", "data/cache.sqlite3"))
    quota_bytes: Optional[int] = field(default_factory=lambda: _env_int("CACHE_QUOTA_BYTES", 5 * 1024 * 1024))
    strict_generations: bool = field(default_factory=lambda: _env_bool("CACHE_STRICT_GENERATIONS", False))
    ttl_seconds: Dict[str, int] = field(default_factory=_ttl_from_env)

    def ttl_ms(self, ttl_class: str) -> int:
        """TTL in milliseconds for a named class; unknown classes raise KeyError."""
        return self.ttl_seconds[ttl_class] * 1000


@dataclass
class RemoteSettings:
    supabase_url: str = field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    supabase_anon_key: str = field(default_factory=lambda: os.getenv("SUPABASE_ANON_KEY", ""))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("SUPABASE_TIMEOUT", 10)))


class Settings:
    def __init__(self) -> None:
        self.cache = CacheSettings()
        self.remote = RemoteSettings()
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
