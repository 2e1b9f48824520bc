"""Process context wiring: in-memory defaults and the Redis event loop-back."""

import asyncio
from unittest.mock import AsyncMock

from config.settings import Settings
from src.pm_account.infrastructure.memory_book import InMemoryBalanceBook
from src.pm_engine.context import build_context
from src.pm_engine.events.models import NewMarketEvent
from tests.helpers import open_market


class _LoopbackPubSub:
    def __init__(self, frames: asyncio.Queue) -> None:
        self._frames = frames
        self.channel: str | None = None

    async def subscribe(self, channel: str) -> None:
        self.channel = channel

    async def unsubscribe(self, channel: str) -> None:
        pass

    async def aclose(self) -> None:
        pass

    async def listen(self):
        while True:
            yield await self._frames.get()


class _LoopbackRedis:
    """Publishes straight back to its own subscribers."""

    def __init__(self) -> None:
        self._frames: asyncio.Queue = asyncio.Queue()
        self.published: list[str] = []

    async def publish(self, channel: str, payload: str) -> None:
        self.published.append(payload)
        await self._frames.put({"type": "message", "data": payload})

    def pubsub(self) -> _LoopbackPubSub:
        return _LoopbackPubSub(self._frames)


class TestBuildContext:
    async def test_in_memory_by_default(self) -> None:
        context = await build_context(Settings(PERSISTENCE_ENABLED=False, REDIS_EVENTS_ENABLED=False))
        try:
            assert isinstance(context.controller._balances, InMemoryBalanceBook)
            assert context.cleanup == []
        finally:
            await context.close()

    async def test_redis_events_reach_local_subscribers(self, monkeypatch) -> None:
        redis = _LoopbackRedis()
        monkeypatch.setattr(
            "src.pm_common.redis_client.get_redis", AsyncMock(return_value=redis)
        )
        context = await build_context(
            Settings(PERSISTENCE_ENABLED=False, REDIS_EVENTS_ENABLED=True)
        )
        queue = context.bus.subscribe()
        try:
            await open_market(context.controller)
            event = await asyncio.wait_for(queue.get(), timeout=1)
        finally:
            await context.close()

        assert isinstance(event, NewMarketEvent)
        assert len(redis.published) == 1
        assert queue.empty()
        assert context.cleanup == []
