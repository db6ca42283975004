"""
Exception hierarchy for the cache and its collaborators.
Why: the store swallows StorageError; RemoteQueryError always reaches the caller.
"""

from typing import Optional


class CacheError(Exception):
    """Base class for everything raised by this package."""


class StorageError(CacheError):
    """Backing key/value namespace failed to read or write."""


class StorageQuotaExceededError(StorageError):
    def __init__(self, key: str, needed: int, quota: int) -> None:
        super().__init__(f"quota exceeded writing {key!r}: {needed} > {quota} bytes")
        self.key = key
        self.needed = needed
        self.quota = quota


class StorageUnavailableError(StorageError):
    pass


class RemoteQueryError(CacheError):
    """Remote data source returned an error or could not be reached."""

    def __init__(
        self, table: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(f"{table}: {message}")
        self.table = table
        self.message = message
        self.status_code = status_code
