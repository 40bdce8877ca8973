"""Fan committed change events out to redis for other terminals."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from redis.exceptions import RedisError

from ..events import ChangeEvent

logger = logging.getLogger("api.realtime")


def channel_for(organization_id: str) -> str:
    return f"rt:changes:{organization_id}"


async def publish_change(redis, event: ChangeEvent) -> bool:
    """Publish ``event`` on the organization's real-time channel.

    Delivery is best effort: a redis failure is logged and reported as
    ``False`` so the committed mutation is never undone by it.
    """

    payload = {**event.as_dict(), "ts": datetime.now(timezone.utc).timestamp()}
    try:
        await redis.publish(channel_for(event.organization_id), json.dumps(payload))
    except (RedisError, OSError) as exc:
        logger.warning(
            "realtime publish failed for %s %s: %s",
            event.entity,
            event.entity_id,
            exc,
            extra={"tenant": event.organization_id},
        )
        return False
    return True


async def forward_changes(queue: asyncio.Queue, redis) -> None:
    """Background consumer relaying bus events to redis."""

    while True:
        event = await queue.get()
        await publish_change(redis, event)
