"""Remote data sources the cache reads through."""

from .source import InMemoryDataSource, PostgrestDataSource, RemoteDataSource

__all__ = ["InMemoryDataSource", "PostgrestDataSource", "RemoteDataSource"]
