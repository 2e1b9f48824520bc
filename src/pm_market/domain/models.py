"""Domain models for pm_market: pure dataclasses, no persistence dependency."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Market:
    id: int
    question: str
    outcomes: tuple[str, ...]  # fixed at creation, len >= 2
    pools: list[int]  # gold per outcome, same order as outcomes
    total_pool: int  # == sum(pools)
    betting_deadline: datetime
    resolution_time: datetime
    status: str  # ACTIVE / RESOLVED / CANCELLED
    house_fee_bps: int
    created_at: datetime
    winning_outcome: int | None = None  # set iff RESOLVED
    resolved_at: datetime | None = None
    # Display metadata, opaque to the wagering math
    market_type: str = "COMMUNITY"
    oracle_type: str = "GAME_SERVER"
    creator: str = ""
    tags: tuple[str, ...] = ()
    featured: bool = False
    total_bets: int = 0

    @property
    def outcome_count(self) -> int:
        return len(self.outcomes)

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"


@dataclass
class Bet:
    id: int
    market_id: int
    outcome_index: int
    bettor_id: str  # wallet/character identifier, opaque
    amount: int
    odds_at_bet: int  # bps snapshot before this bet, display only
    potential_payout: int  # preview payout at placement, display only
    timestamp: datetime
    claimed: bool = False


@dataclass
class OddsHistoryPoint:
    timestamp: datetime
    odds: list[int]
    total_pool: int


@dataclass
class ResolutionResult:
    """Outcome of settling a market against its frozen pools."""

    market_id: int
    winning_outcome: int
    total_pool: int
    net_pool: int
    winning_pool: int
    house_fee: int  # totalPool - netPool, or totalPool when nobody backed the winner
    payouts: dict[int, int] = field(default_factory=dict)  # bet_id -> gold

    @property
    def total_paid_out(self) -> int:
        return sum(self.payouts.values())

    @property
    def rounding_loss(self) -> int:
        return self.total_pool - self.house_fee - self.total_paid_out
