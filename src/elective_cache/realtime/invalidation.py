"""
Realtime invalidation: which cache keys a change on each table makes stale.
Why: the mapping lives in one table owned by the composition layer, so it can be
tested without any UI and read in one place.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from ..core.cache import TTLCacheStore
from ..core.keys import domain_patterns
from ..core.logging import get_logger
from ..core.schemas import ChangeEvent
from .stream import ChangeStream, Subscription

logger = get_logger(__name__)

WATCHED_EVENTS = frozenset({"insert", "update", "delete"})


def _patterns(*domains: str) -> List[str]:
    return [p for d in domains for p in domain_patterns(d)]


# table -> key patterns (exact keys or globs). Groups and courses embed degree
# names, and groups carry student counts from profiles.
INVALIDATION_TABLE: Dict[str, List[str]] = {
    "degrees": _patterns("degrees", "groups", "courses"),
    "groups": _patterns("groups"),
    "profiles": _patterns("groups"),
    "universities": _patterns("universities", "exchange_universities"),
    "exchange_universities": _patterns("exchange_universities"),
    "elective_exchange": _patterns("exchange_universities"),
    "countries": _patterns("countries"),
    "courses": _patterns("courses"),
    "elective_courses": _patterns("courses"),
    "course_selections": _patterns("student_selections"),
    "exchange_selections": _patterns("student_selections"),
    "settings": _patterns("settings"),
}


class RealtimeInvalidator:
    """Subscribes to every mapped table and invalidates its keys on change."""

    def __init__(
        self,
        store: TTLCacheStore,
        stream: ChangeStream,
        table: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self.store = store
        self.stream = stream
        self.table = dict(table if table is not None else INVALIDATION_TABLE)
        self._subscriptions: List[Subscription] = []

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> None:
        if self._subscriptions:
            return
        for table_name in self.table:
            self._subscriptions.append(self.stream.subscribe(table_name, self.handle))
        logger.info(f"realtime invalidation watching {len(self._subscriptions)} tables")

    def stop(self) -> None:
        for sub in self._subscriptions:
            self.stream.unsubscribe(sub)
        self._subscriptions.clear()

    def handle(self, event: ChangeEvent) -> int:
        """Invalidate every key mapped to ``event.table``; returns how many were removed."""
        if event.event_type not in WATCHED_EVENTS:
            return 0
        patterns = self.table.get(event.table)
        if not patterns:
            logger.debug(f"no cache keys mapped to {event.table}", extra={"table": event.table})
            return 0
        removed = sum(len(self.store.invalidate_matching(p)) for p in patterns)
        logger.info(
            f"{event.table} {event.event_type}: invalidated {removed} cache key(s)",
            extra={"table": event.table, "event_type": event.event_type, "removed": removed},
        )
        return removed
