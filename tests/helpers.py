"""Test helpers shared by unit and integration tests."""

from datetime import UTC, datetime, timedelta

from src.pm_engine.engine.lifecycle import MarketLifecycleController
from src.pm_market.domain.models import Bet, Market

T0 = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
DEADLINE = T0 + timedelta(days=1)
ADMIN_KEY = "test-admin-key"
STARTING_GOLD = {"alice": 500_000, "bob": 500_000, "carol": 500_000, "dave": 500_000}


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_market(**kwargs: object) -> Market:
    defaults: dict[str, object] = {
        "id": 1,
        "question": "Will the dragon fall before the eclipse?",
        "outcomes": ("Yes", "No"),
        "pools": [0, 0],
        "total_pool": 0,
        "betting_deadline": DEADLINE,
        "resolution_time": T0 + timedelta(days=2),
        "status": "ACTIVE",
        "house_fee_bps": 500,
        "created_at": T0,
    }
    defaults.update(kwargs)
    return Market(**defaults)  # type: ignore[arg-type]


def make_bet(**kwargs: object) -> Bet:
    defaults: dict[str, object] = {
        "id": 1,
        "market_id": 1,
        "outcome_index": 0,
        "bettor_id": "alice",
        "amount": 100,
        "odds_at_bet": 0,
        "potential_payout": 95,
        "timestamp": T0,
    }
    defaults.update(kwargs)
    return Bet(**defaults)  # type: ignore[arg-type]


async def open_market(
    controller: MarketLifecycleController,
    outcomes: tuple[str, ...] = ("Yes", "No"),
    fee_bps: int | None = 500,
    question: str = "Will the dragon fall before the eclipse?",
    **kwargs: object,
) -> Market:
    return await controller.create_market(
        question=question,
        outcomes=outcomes,
        betting_deadline=DEADLINE,
        resolution_time=T0 + timedelta(days=2),
        fee_bps=fee_bps,
        **kwargs,  # type: ignore[arg-type]
    )
