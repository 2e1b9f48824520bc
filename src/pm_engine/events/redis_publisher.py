"""Redis pub/sub transport for events, so several socket servers can
share one engine process. Each process feeds ``iter_events`` into its
``EventBus.consume``.
"""

import logging
from collections.abc import AsyncIterator

import redis.asyncio as aioredis

from src.pm_common.errors import MalformedPayloadError
from src.pm_engine.events.models import Event, decode_event

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def publish(self, event: Event) -> None:
        await self._redis.publish(self._channel, event.model_dump_json())


async def iter_events(redis: aioredis.Redis, channel: str) -> AsyncIterator[Event]:
    """Yield decoded events from a channel; malformed frames are skipped."""
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    try:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield decode_event(message["data"])
            except MalformedPayloadError as exc:
                logger.warning("Skipping malformed event on %s: %s", channel, exc.message)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
