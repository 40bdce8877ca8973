"""Per-organization cache of derived views, dropped on change events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from ..events import ORDER_ITEMS, ORDERS, TABLES, ChangeEvent

logger = logging.getLogger("api.cache")

KOT_BOARD = "kot_board"
TABLE_SUMMARY = "table_summary"
DASHBOARD = "dashboard"

# Which derived views depend on which stored entity.
DEPENDENCIES: Dict[str, Tuple[str, ...]] = {
    ORDERS: (KOT_BOARD, DASHBOARD),
    ORDER_ITEMS: (KOT_BOARD, DASHBOARD),
    TABLES: (TABLE_SUMMARY, DASHBOARD),
}

# Used when the caller passes no ``ttl``. Invalidation only reaches the
# worker that committed the change, so every view needs an upper bound.
DEFAULT_TTLS: Dict[str, float] = {
    KOT_BOARD: 5,
    TABLE_SUMMARY: 60,
    DASHBOARD: 30,
}


class ProjectionCache:
    """Hold built projections until a relevant change arrives.

    The KOT board depends on the current time (rush priority), so callers
    building it pass a short ``ttl``. Other workers never see this process's
    change events, hence :data:`DEFAULT_TTLS` for every known view.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._entries: Dict[Tuple[str, str], Tuple[Any, float | None]] = {}
        self._clock = clock or (lambda: asyncio.get_running_loop().time())
        self.hits = 0
        self.misses = 0

    async def get_or_build(
        self,
        organization_id: str,
        key: str,
        builder: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        entry = self._entries.get((organization_id, key))
        if entry is not None:
            value, expires = entry
            if expires is None or self._clock() < expires:
                self.hits += 1
                return value
        self.misses += 1
        value = await builder()
        if ttl is None:
            ttl = DEFAULT_TTLS.get(key)
        expires = self._clock() + ttl if ttl is not None else None
        self._entries[(organization_id, key)] = (value, expires)
        return value

    def invalidate(self, event: ChangeEvent) -> None:
        for key in DEPENDENCIES.get(event.entity, ()):
            if self._entries.pop((event.organization_id, key), None) is not None:
                logger.debug(
                    "dropped %s after %s %s", key, event.entity, event.entity_id
                )

    def clear(self) -> None:
        self._entries.clear()


projection_cache = ProjectionCache()
