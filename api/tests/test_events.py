import asyncio
import json
import logging
import pathlib
import sys

import fakeredis.aioredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from api.app.events import CHANNELS, ORDERS, TABLES, ChangeEvent, EventBus
from api.app.hooks.realtime import channel_for, forward_changes, publish_change
from api.app.services import order_lifecycle
from api.app.services.projection_cache import (
    DASHBOARD,
    DEFAULT_TTLS,
    KOT_BOARD,
    TABLE_SUMMARY,
    ProjectionCache,
)
from api.tests._outlet import MASALA_CHAI, ORG


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _RecordingRedis:
    def __init__(self) -> None:
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))
        return 1


class _DownRedis:
    async def publish(self, channel, message):
        raise RedisConnectionError("connection refused")


def _builder(value):
    calls = []

    async def build():
        calls.append(value)
        return value

    return build, calls


@pytest.mark.anyio
async def test_publish_reaches_only_matching_channel():
    bus = EventBus()
    orders_q = bus.subscribe(ORDERS)
    tables_q = bus.subscribe(TABLES)
    event = ChangeEvent(ORDERS, 7, "insert", ORG)

    await bus.publish_all([event])

    assert orders_q.get_nowait() == event
    assert tables_q.empty()


@pytest.mark.anyio
async def test_listeners_run_before_queues_and_unsubscribe():
    bus = EventBus()
    seen = []
    queue = bus.subscribe_many(CHANNELS)

    def on_change(event):
        seen.append((event.entity, queue.qsize()))

    bus.listen(CHANNELS, on_change)
    await bus.publish(TABLES, ChangeEvent(TABLES, 3, "update", ORG))
    assert seen == [(TABLES, 0)]
    assert queue.qsize() == 1

    bus.unsubscribe(queue)
    await bus.publish(ORDERS, ChangeEvent(ORDERS, 1, "update", ORG))
    assert queue.qsize() == 1
    assert len(seen) == 2


@pytest.mark.anyio
async def test_cache_drops_only_dependent_views():
    cache = ProjectionCache(clock=_Clock())
    for key in (KOT_BOARD, TABLE_SUMMARY, DASHBOARD):
        build, _ = _builder(key)
        await cache.get_or_build(ORG, key, build)
    other_build, _ = _builder("other")
    await cache.get_or_build("outlet-2", KOT_BOARD, other_build)

    cache.invalidate(ChangeEvent(TABLES, 3, "update", ORG))

    build, calls = _builder("rebuilt")
    assert await cache.get_or_build(ORG, KOT_BOARD, build) == KOT_BOARD
    assert await cache.get_or_build(ORG, TABLE_SUMMARY, build) == "rebuilt"
    assert await cache.get_or_build(ORG, DASHBOARD, build) == "rebuilt"
    assert await cache.get_or_build("outlet-2", KOT_BOARD, build) == "other"
    assert calls == ["rebuilt", "rebuilt"]


@pytest.mark.anyio
async def test_cache_entries_expire():
    clock = _Clock()
    cache = ProjectionCache(clock=clock)
    build, calls = _builder("board")

    await cache.get_or_build(ORG, KOT_BOARD, build, ttl=5)
    clock.now = 4.9
    await cache.get_or_build(ORG, KOT_BOARD, build, ttl=5)
    clock.now = 5.0
    await cache.get_or_build(ORG, KOT_BOARD, build, ttl=5)

    assert len(calls) == 2
    assert (cache.hits, cache.misses) == (1, 2)


@pytest.mark.anyio
async def test_table_summary_expires_without_explicit_ttl():
    clock = _Clock()
    cache = ProjectionCache(clock=clock)
    build, calls = _builder("summary")

    await cache.get_or_build(ORG, TABLE_SUMMARY, build)
    clock.now = DEFAULT_TTLS[TABLE_SUMMARY] - 1
    await cache.get_or_build(ORG, TABLE_SUMMARY, build)
    assert len(calls) == 1

    clock.now = DEFAULT_TTLS[TABLE_SUMMARY]
    await cache.get_or_build(ORG, TABLE_SUMMARY, build)
    assert len(calls) == 2


@pytest.mark.anyio
async def test_committed_order_invalidates_board(session, ctx, bus):
    cache = ProjectionCache(clock=_Clock())
    bus.listen(CHANNELS, cache.invalidate)
    build, calls = _builder("stale board")
    await cache.get_or_build(ctx.organization_id, KOT_BOARD, build)

    await order_lifecycle.create_order(
        session, ctx, "takeaway", [{"menu_item_id": MASALA_CHAI, "qty": 1}], bus=bus
    )

    fresh, _ = _builder("fresh board")
    assert await cache.get_or_build(ctx.organization_id, KOT_BOARD, fresh) == (
        "fresh board"
    )


@pytest.mark.anyio
async def test_realtime_payload_goes_to_outlet_channel():
    redis = _RecordingRedis()
    event = ChangeEvent(ORDERS, 12, "update", ORG)

    assert await publish_change(redis, event) is True

    channel, payload = redis.published[0]
    assert channel == channel_for(ORG) == "rt:changes:outlet-1"
    assert payload["entity"] == ORDERS
    assert payload["entity_id"] == 12
    assert payload["kind"] == "update"
    assert "ts" in payload


@pytest.mark.anyio
async def test_realtime_publish_with_fakeredis():
    redis = fakeredis.aioredis.FakeRedis()
    assert await publish_change(redis, ChangeEvent(TABLES, 3, "update", ORG))


@pytest.mark.anyio
async def test_realtime_failure_is_logged_not_raised(caplog):
    with caplog.at_level(logging.WARNING, logger="api.realtime"):
        ok = await publish_change(_DownRedis(), ChangeEvent(TABLES, 3, "update", ORG))
    assert ok is False
    assert "realtime publish failed" in caplog.text


@pytest.mark.anyio
async def test_forward_changes_relays_queue():
    bus = EventBus()
    queue = bus.subscribe_many(CHANNELS)
    redis = _RecordingRedis()
    task = asyncio.create_task(forward_changes(queue, redis))
    try:
        await bus.publish(ORDERS, ChangeEvent(ORDERS, 1, "insert", ORG))
        await bus.publish(TABLES, ChangeEvent(TABLES, 3, "update", ORG))
        for _ in range(50):
            if len(redis.published) == 2:
                break
            await asyncio.sleep(0)
    finally:
        task.cancel()
    assert [p["entity"] for _, p in redis.published] == [ORDERS, TABLES]
