"""Electives reference-data cache: TTL store, realtime invalidation, HTTP layer."""

__version__ = "0.1.0"
