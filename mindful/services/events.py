"""In-process event bus for cross-view notifications.

A closed set of event types replaces ambient global listeners. Views
subscribe on mount and unsubscribe on unmount; publishing with no
subscribers is a no-op.

`RedisEventBridge` relays BOOKMARKS_UPDATED over Redis pub/sub so views in
other processes sharing the same Redis also re-hydrate. Delivery is
best-effort: relay failures are logged, never raised.
"""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import redis
import redis.asyncio as aioredis

from mindful.db.keys import RedisKeyPrefix
from mindful.utils import generate_id, get_logger

logger = get_logger(__name__)


class EventType(str, Enum):
    """Event types that may travel on the bus."""

    BOOKMARKS_UPDATED = "MINDFUL_BOOKMARKS_UPDATED"
    VISIBILITY_REGAINED = "VISIBILITY_REGAINED"


Handler = Callable[[EventType, dict[str, Any]], Awaitable[None] | None]


class EventBus:
    """Fire-and-forget publish/subscribe with explicit subscriber lifecycle."""

    def __init__(self):
        self._handlers: dict[EventType, list[Handler]] = {event_type: [] for event_type in EventType}
        self._pending: set[asyncio.Task] = set()
        self._forwarders: list[Callable[[EventType, dict[str, Any]], Awaitable[None]]] = []

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        handlers = self._handlers[EventType(event_type)]
        if handler not in handlers:
            handlers.append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        handlers = self._handlers[EventType(event_type)]
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._handlers[EventType(event_type)])

    def add_forwarder(self, forwarder: Callable[[EventType, dict[str, Any]], Awaitable[None]]) -> None:
        """Forward locally published events elsewhere (e.g. Redis pub/sub)."""
        self._forwarders.append(forwarder)

    def publish(self, event_type: EventType, payload: dict[str, Any] | None = None) -> None:
        """Publish to local subscribers and forwarders; never raises."""
        payload = payload or {}
        self.dispatch(event_type, payload)
        for forwarder in self._forwarders:
            self._schedule(forwarder(EventType(event_type), payload))

    def dispatch(self, event_type: EventType, payload: dict[str, Any]) -> None:
        """Deliver to local subscribers only."""
        for handler in list(self._handlers[EventType(event_type)]):
            try:
                result = handler(EventType(event_type), payload)
            except Exception as e:
                logger.warning(f"Event handler failed for {event_type}: {e}")
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

    def _schedule(self, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; dropping async event delivery")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(self._guard(awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _guard(awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.warning(f"Async event delivery failed: {e}")

    async def drain(self) -> None:
        """Wait for in-flight async deliveries (used by tests and shutdown)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class RedisEventBridge:
    """Relays bus events across processes via Redis pub/sub.

    Messages carry the origin id so a bridge ignores its own broadcasts.
    """

    def __init__(self, bus: EventBus, client: aioredis.Redis, channel: str | None = None):
        self.bus = bus
        self.client = client
        self.channel = channel or RedisKeyPrefix.events_channel()
        self.origin = generate_id("view")
        self._pubsub = None
        self._listener: asyncio.Task | None = None
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.bus.add_forwarder(self._forward)
        self._pubsub = self.client.pubsub()
        await self._pubsub.subscribe(self.channel)
        self._listener = asyncio.create_task(self._listen())
        logger.info(f"Event bridge listening on {self.channel}")

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None

    async def _forward(self, event_type: EventType, payload: dict[str, Any]) -> None:
        if event_type != EventType.BOOKMARKS_UPDATED:
            return
        message = json.dumps({"type": event_type.value, "origin": self.origin, "payload": payload})
        try:
            await self.client.publish(self.channel, message)
        except redis.RedisError as e:
            logger.warning(f"Failed to broadcast {event_type.value}: {e}")

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                data = json.loads(message["data"])
                event_type = EventType(data["type"])
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.debug(f"Ignoring malformed bridge message: {e}")
                continue
            if data.get("origin") == self.origin:
                continue
            self.bus.dispatch(event_type, data.get("payload") or {})
