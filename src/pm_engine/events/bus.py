"""EventBus: in-process fan-out plus optional Redis relay.

Without a relay, published events go straight to local subscriber queues.
With one, events travel through the relay and come back in through
``consume``, so every process listening on the channel (this one included)
serves the same stream exactly once.

Publishing never fails the caller: by the time an event is published the
state change is already committed, so transport problems are logged.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from src.pm_engine.events.models import Event

logger = logging.getLogger(__name__)


class EventPublisherProtocol(Protocol):
    async def publish(self, event: Event) -> None: ...


class EventBus:
    def __init__(
        self,
        relay: EventPublisherProtocol | None = None,
        queue_size: int = 256,
    ) -> None:
        self._relay = relay
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[Event]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[Event]:
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Event]) -> None:
        self._subscribers.discard(queue)

    def deliver(self, event: Event) -> None:
        """Hand an event to every local subscriber queue."""
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full, dropping %s event", event.type)

    async def publish(self, event: Event) -> None:
        if self._relay is None:
            self.deliver(event)
            return
        try:
            await self._relay.publish(event)
        except Exception:
            logger.exception("Failed to relay %s event, delivering locally", event.type)
            self.deliver(event)

    async def consume(self, events: AsyncIterator[Event]) -> None:
        """Deliver events arriving from the relay channel until the source ends."""
        async for event in events:
            self.deliver(event)
