# events.py

"""In-memory Pub/Sub dispatcher for store change notifications.

Every committed mutation of an order, order item or table is announced as a
:class:`ChangeEvent` on the channel named after the entity. Consumers (the
projection cache, the redis fan-out) subscribe to the channels they care
about and re-derive their views from fresh reads.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List

ORDERS = "orders"
ORDER_ITEMS = "order_items"
TABLES = "restaurant_tables"
CHANNELS = (ORDERS, ORDER_ITEMS, TABLES)


@dataclass(frozen=True)
class ChangeEvent:
    """A single committed change to a stored record."""

    entity: str
    entity_id: int
    kind: str
    organization_id: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EventBus:
    """Dispatch events to subscribers via :class:`asyncio.Queue` instances."""

    def __init__(self) -> None:
        self._subs: Dict[str, List[asyncio.Queue]] = defaultdict(list)
        self._listeners: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, name: str) -> asyncio.Queue:
        """Register interest in ``name`` events and return a queue."""

        queue: asyncio.Queue = asyncio.Queue()
        self._subs[name].append(queue)
        return queue

    def subscribe_many(self, names: Iterable[str]) -> asyncio.Queue:
        """Register a single queue for several channels."""

        queue: asyncio.Queue = asyncio.Queue()
        for name in names:
            self._subs[name].append(queue)
        return queue

    def listen(self, names: Iterable[str], callback: Callable[[Any], None]) -> None:
        """Call ``callback`` synchronously for every event on ``names``.

        Listeners run before queued subscribers are fed, so state they
        maintain is already up to date when ``publish`` returns.
        """

        for name in names:
            self._listeners[name].append(callback)

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        for queues in self._subs.values():
            if queue in queues:
                queues.remove(queue)

    async def publish(self, name: str, payload: Any) -> None:
        """Broadcast ``payload`` to all subscribers of ``name``."""

        for callback in self._listeners.get(name, []):
            callback(payload)
        for queue in self._subs.get(name, []):
            await queue.put(payload)

    async def publish_all(self, events: Iterable[ChangeEvent]) -> None:
        """Publish each event on the channel named by its entity."""

        for event in events:
            await self.publish(event.entity, event)


event_bus = EventBus()
