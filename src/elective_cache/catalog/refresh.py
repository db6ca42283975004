"""
One-shot force-refresh flags.

A screen that just saved something sets the flag for its domain; the next
read for that domain skips the cache once and clears the flag.
"""

from typing import Set


class ForceRefreshFlags:
    def __init__(self) -> None:
        self._flags: Set[str] = set()

    def set(self, name: str) -> None:
        self._flags.add(name)

    def is_set(self, name: str) -> bool:
        return name in self._flags

    def clear(self, name: str) -> None:
        self._flags.discard(name)

    def consume(self, name: str) -> bool:
        """Return whether ``name`` was set, clearing it."""
        if name in self._flags:
            self._flags.discard(name)
            return True
        return False
