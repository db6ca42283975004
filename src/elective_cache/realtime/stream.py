"""
Change-notification stream: table-scoped subscriptions, asynchronous delivery.
"""

import asyncio
import inspect
import itertools
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set, Union

from ..core.logging import get_logger
from ..core.schemas import ChangeEvent

logger = get_logger(__name__)

Handler = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Subscription:
    id: int
    table: str


class ChangeStream(Protocol):
    def subscribe(self, table: str, handler: Handler) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...


class InProcessChangeStream:
    """Fan-out of published events to handlers subscribed on the event's table.

    ``publish`` never calls a handler inline: each delivery is a task on the
    running loop, so handlers run after the publisher yields, in no particular
    order relative to queries already in flight.
    """

    def __init__(self) -> None:
        self._handlers: Dict[int, Handler] = {}
        self._tables: Dict[int, str] = {}
        self._ids = itertools.count(1)
        self._pending: Set["asyncio.Task[None]"] = set()

    def subscribe(self, table: str, handler: Handler) -> Subscription:
        sub = Subscription(id=next(self._ids), table=table)
        self._handlers[sub.id] = handler
        self._tables[sub.id] = table
        logger.debug(f"subscribed #{sub.id} to {table}")
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        self._handlers.pop(subscription.id, None)
        self._tables.pop(subscription.id, None)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is None:
            return len(self._handlers)
        return sum(1 for t in self._tables.values() if t == table)

    def publish(self, event: ChangeEvent) -> int:
        """Schedule delivery to every subscriber of ``event.table``; returns how many."""
        loop = asyncio.get_running_loop()
        targets: List[Handler] = [
            self._handlers[sid] for sid, table in self._tables.items() if table == event.table
        ]
        for handler in targets:
            task = loop.create_task(self._deliver(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(targets)

    async def drain(self) -> None:
        """Wait until every scheduled delivery has run."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _deliver(self, handler: Handler, event: ChangeEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.error(
                f"change handler failed for {event.table}/{event.event_type}",
                exc_info=True,
                extra={"table": event.table, "event_type": event.event_type},
            )
