"""Application context: wires the engine, its stores and the event bus.

One context per process. The FastAPI app keeps it on ``app.state.context``;
tests build an in-memory one directly with ``build_memory_context``.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from config.settings import Settings
from src.pm_account.infrastructure.memory_book import InMemoryBalanceBook
from src.pm_common.datetime_utils import utc_now
from src.pm_engine.engine.lifecycle import MarketLifecycleController
from src.pm_engine.events.bus import EventBus
from src.pm_market.application.service import PredictionApplicationService

logger = logging.getLogger(__name__)


@dataclass
class WageringContext:
    controller: MarketLifecycleController
    service: PredictionApplicationService
    bus: EventBus
    cleanup: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def close(self) -> None:
        for fn in reversed(self.cleanup):
            await fn()
        self.cleanup.clear()


def _log_consumer_exit(task: asyncio.Task[None]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Redis event consumer stopped: %r", task.exception())


def _cancel_task(task: asyncio.Task[None]) -> Callable[[], Awaitable[None]]:
    async def cancel() -> None:
        task.cancel()
        # A failure was already logged by the done callback.
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await task

    return cancel


def build_memory_context(
    balances: Mapping[str, int] | None = None,
    clock: Callable[[], datetime] = utc_now,
    default_fee_bps: int = 500,
    big_bet_threshold: int = 10_000,
    big_win_threshold: int = 25_000,
) -> WageringContext:
    bus = EventBus()
    controller = MarketLifecycleController(
        InMemoryBalanceBook(balances),
        notifier=bus,
        clock=clock,
        default_fee_bps=default_fee_bps,
        big_bet_threshold=big_bet_threshold,
        big_win_threshold=big_win_threshold,
    )
    return WageringContext(
        controller=controller,
        service=PredictionApplicationService(controller),
        bus=bus,
    )


async def build_context(settings: Settings) -> WageringContext:
    """Build the process context from settings, rebuilding state from PostgreSQL if enabled."""
    cleanup: list[Callable[[], Awaitable[None]]] = []

    relay = None
    if settings.REDIS_EVENTS_ENABLED:
        from src.pm_common.redis_client import close_redis, get_redis
        from src.pm_engine.events.redis_publisher import RedisEventPublisher, iter_events

        redis = await get_redis(settings.REDIS_URL)
        relay = RedisEventPublisher(redis, settings.EVENTS_CHANNEL)
        cleanup.append(close_redis)
    bus = EventBus(relay=relay)

    if relay is not None:
        consumer = asyncio.create_task(bus.consume(iter_events(redis, settings.EVENTS_CHANNEL)))
        consumer.add_done_callback(_log_consumer_exit)
        cleanup.append(_cancel_task(consumer))
        logger.info("Relaying events through Redis channel %s", settings.EVENTS_CHANNEL)

    if settings.PERSISTENCE_ENABLED:
        from src.pm_account.infrastructure.persistence import SqlBalanceBook
        from src.pm_common.database import build_engine, build_session_factory
        from src.pm_ledger.infrastructure.persistence import SqlWageringRepository

        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        session_factory = build_session_factory(engine)
        cleanup.append(engine.dispose)
        controller = MarketLifecycleController(
            SqlBalanceBook(session_factory),
            repo=SqlWageringRepository(session_factory),
            notifier=bus,
            default_fee_bps=settings.DEFAULT_HOUSE_FEE_BPS,
            big_bet_threshold=settings.BIG_BET_THRESHOLD,
            big_win_threshold=settings.BIG_WIN_THRESHOLD,
        )
        await controller.rebuild()
    else:
        controller = MarketLifecycleController(
            InMemoryBalanceBook(),
            notifier=bus,
            default_fee_bps=settings.DEFAULT_HOUSE_FEE_BPS,
            big_bet_threshold=settings.BIG_BET_THRESHOLD,
            big_win_threshold=settings.BIG_WIN_THRESHOLD,
        )
        logger.info("Persistence disabled: markets and bets are held in memory only")

    return WageringContext(
        controller=controller,
        service=PredictionApplicationService(controller),
        bus=bus,
        cleanup=cleanup,
    )
