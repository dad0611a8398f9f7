"""Tests for EventBus and RedisEventBridge.

NOTE: The bridge tests use fakeredis pub/sub, so no Redis server is needed.
"""

import asyncio

import pytest

from mindful.services.events import EventBus, EventType, RedisEventBridge


class TestEventBus:
    """In-process delivery."""

    def test_publish_without_subscribers(self):
        EventBus().publish(EventType.BOOKMARKS_UPDATED)

    def test_sync_handler_and_unsubscribe(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(EventType.BOOKMARKS_UPDATED, lambda t, p: received.append((t, p)))

        bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w1"})
        unsubscribe()
        bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w2"})

        assert received == [(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w1"})]

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken(t, p):
            raise RuntimeError("boom")

        bus.subscribe(EventType.BOOKMARKS_UPDATED, broken)
        bus.subscribe(EventType.BOOKMARKS_UPDATED, lambda t, p: received.append(p))
        bus.publish(EventType.BOOKMARKS_UPDATED, {"x": 1})

        assert received == [{"x": 1}]

    def test_event_types_are_isolated(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.VISIBILITY_REGAINED, lambda t, p: received.append(t))
        bus.publish(EventType.BOOKMARKS_UPDATED)
        assert received == []

    @pytest.mark.asyncio
    async def test_async_handler_is_drained(self):
        bus = EventBus()
        received = []

        async def handler(t, p):
            await asyncio.sleep(0)
            received.append(p)

        bus.subscribe(EventType.BOOKMARKS_UPDATED, handler)
        bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w1"})
        await bus.drain()

        assert received == [{"workspaceId": "w1"}]


class TestRedisEventBridge:
    """Cross-process relay over pub/sub."""

    @pytest.mark.asyncio
    async def test_relays_between_buses(self, fake_async_redis_client):
        bus_a, bus_b = EventBus(), EventBus()
        bridge_a = RedisEventBridge(bus_a, fake_async_redis_client, channel="test:events")
        bridge_b = RedisEventBridge(bus_b, fake_async_redis_client, channel="test:events")
        await bridge_a.start()
        await bridge_b.start()

        received_a, received_b = [], []
        arrived = asyncio.Event()
        bus_a.subscribe(EventType.BOOKMARKS_UPDATED, lambda t, p: received_a.append(p))

        def on_b(t, p):
            received_b.append(p)
            arrived.set()

        bus_b.subscribe(EventType.BOOKMARKS_UPDATED, on_b)

        try:
            bus_a.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w1"})
            await asyncio.wait_for(arrived.wait(), timeout=2)
            await asyncio.sleep(0.05)
        finally:
            await bridge_a.stop()
            await bridge_b.stop()

        assert received_b == [{"workspaceId": "w1"}]
        # local delivery only; the bridge ignores its own broadcast
        assert received_a == [{"workspaceId": "w1"}]
