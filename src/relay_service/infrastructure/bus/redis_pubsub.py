"""Redis Pub/Sub fan-out between relay instances."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from relay_service.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis, channel: str, origin: str) -> None:
        self._redis = redis
        self._channel = channel
        self._origin = origin

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        raw = serialize_event(event_type, self._origin, payload)
        await self._redis.publish(self._channel, raw)


OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task relaying events published by other instances.

    Events carrying this instance's own origin are skipped; they were
    already broadcast locally.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        origin: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._origin = origin
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def handle_raw(self, raw: str | bytes) -> bool:
        """Dispatch one raw pubsub payload. Returns False when it was skipped."""
        event_type, origin, data = deserialize_event(raw)
        if origin == self._origin:
            return False
        await self._callback(event_type, data)
        return True

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self.handle_raw(message["data"])
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
