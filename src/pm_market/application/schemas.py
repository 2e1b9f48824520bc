"""Pydantic schemas for the prediction API and real-time payloads.

Odds are bps ints (10000 = 1.00x) with a parallel ``*_display`` string
("2.50x", "-" when nobody has backed the outcome yet).
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.pm_common.enums import MarketSortKey, MarketType, OracleType, SortOrder
from src.pm_common.gold import odds_to_display
from src.pm_market.domain.models import Bet, Market, OddsHistoryPoint, ResolutionResult
from src.pm_pricing.domain.odds import BetPreview, calculate_odds, implied_probability

# ---------------------------------------------------------------------------
# Market
# ---------------------------------------------------------------------------


class MarketSnapshot(BaseModel):
    id: int
    question: str
    outcomes: list[str]
    pools: list[int]
    total_pool: int
    odds: list[int]
    odds_display: list[str]
    implied_probabilities: list[int]
    betting_deadline: datetime
    resolution_time: datetime
    status: str
    winning_outcome: int | None
    house_fee_bps: int
    market_type: str
    oracle_type: str
    creator: str
    tags: list[str]
    featured: bool
    total_bets: int
    created_at: datetime
    resolved_at: datetime | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketSnapshot":
        odds = calculate_odds(m.pools, m.total_pool, m.house_fee_bps)
        return cls(
            id=m.id,
            question=m.question,
            outcomes=list(m.outcomes),
            pools=list(m.pools),
            total_pool=m.total_pool,
            odds=odds,
            odds_display=[odds_to_display(o) for o in odds],
            implied_probabilities=[implied_probability(o) for o in odds],
            betting_deadline=m.betting_deadline,
            resolution_time=m.resolution_time,
            status=m.status,
            winning_outcome=m.winning_outcome,
            house_fee_bps=m.house_fee_bps,
            market_type=m.market_type,
            oracle_type=m.oracle_type,
            creator=m.creator,
            tags=list(m.tags),
            featured=m.featured,
            total_bets=m.total_bets,
            created_at=m.created_at,
            resolved_at=m.resolved_at,
        )


class MarketListResponse(BaseModel):
    markets: list[MarketSnapshot]
    total: int
    page: int
    page_size: int


class MarketFilters(BaseModel):
    status: str | None = None  # None -> ACTIVE, "ALL" -> no filter
    market_type: MarketType | None = None
    featured: bool | None = None
    min_pool: int | None = None
    search: str | None = None
    sort_by: MarketSortKey = MarketSortKey.DEADLINE
    sort_order: SortOrder | None = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class OddsHistoryOut(BaseModel):
    timestamp: datetime
    odds: list[int]
    total_pool: int

    @classmethod
    def from_domain(cls, p: OddsHistoryPoint) -> "OddsHistoryOut":
        return cls(timestamp=p.timestamp, odds=list(p.odds), total_pool=p.total_pool)


# ---------------------------------------------------------------------------
# Bets
# ---------------------------------------------------------------------------


class BetView(BaseModel):
    id: int
    market_id: int
    outcome_index: int
    outcome_name: str
    bettor_id: str
    amount: int
    odds_at_bet: int
    odds_at_bet_display: str
    potential_payout: int
    timestamp: datetime
    claimed: bool
    market_status: str
    won: bool | None  # None while the market is ACTIVE or CANCELLED
    actual_payout: int | None  # None while the market is ACTIVE

    @classmethod
    def from_domain(cls, bet: Bet, market: Market, payout: int) -> "BetView":
        won: bool | None = None
        if market.status == "RESOLVED":
            won = bet.outcome_index == market.winning_outcome
        return cls(
            id=bet.id,
            market_id=bet.market_id,
            outcome_index=bet.outcome_index,
            outcome_name=market.outcomes[bet.outcome_index],
            bettor_id=bet.bettor_id,
            amount=bet.amount,
            odds_at_bet=bet.odds_at_bet,
            odds_at_bet_display=odds_to_display(bet.odds_at_bet),
            potential_payout=bet.potential_payout,
            timestamp=bet.timestamp,
            claimed=bet.claimed,
            market_status=market.status,
            won=won,
            actual_payout=None if market.status == "ACTIVE" else payout,
        )


class MarketDetailResponse(BaseModel):
    market: MarketSnapshot
    recent_bets: list[BetView]
    odds_history: list[OddsHistoryOut]


class BetPreviewResponse(BaseModel):
    market_id: int
    outcome_index: int
    amount: int
    payout: int
    profit: int
    old_odds: int
    new_odds: int
    new_odds_display: str
    slippage_pct: float

    @classmethod
    def from_preview(
        cls, market_id: int, outcome_index: int, amount: int, p: BetPreview
    ) -> "BetPreviewResponse":
        return cls(
            market_id=market_id,
            outcome_index=outcome_index,
            amount=amount,
            payout=p.payout,
            profit=p.payout - amount,
            old_odds=p.old_odds,
            new_odds=p.new_odds,
            new_odds_display=odds_to_display(p.new_odds),
            slippage_pct=round(p.slippage_pct, 4),
        )


class PlaceBetRequest(BaseModel):
    market_id: int
    outcome_index: int
    amount: int
    bettor_id: str = Field(..., min_length=1, max_length=128)


class PlaceBetResponse(BaseModel):
    bet: BetView
    new_odds: list[int]
    pools: list[int]
    new_total_pool: int
    balance_after: int


class ClaimRequest(BaseModel):
    market_id: int
    bettor_id: str = Field(..., min_length=1, max_length=128)


class ClaimResponse(BaseModel):
    market_id: int
    bettor_id: str
    payout: int
    balance_after: int


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)
    outcomes: list[str]
    betting_deadline: datetime
    resolution_time: datetime
    fee_bps: int | None = None
    market_type: MarketType = MarketType.COMMUNITY
    oracle_type: OracleType = OracleType.GAME_SERVER
    creator: str = ""
    tags: list[str] = Field(default_factory=list)
    featured: bool = False


class ResolveRequest(BaseModel):
    winning_outcome: int


class ResolutionResponse(BaseModel):
    market_id: int
    winning_outcome: int
    winning_outcome_name: str
    total_pool: int
    net_pool: int
    house_fee: int
    total_paid_out: int
    rounding_loss: int
    payouts: dict[int, int]

    @classmethod
    def from_domain(cls, r: ResolutionResult, outcome_name: str) -> "ResolutionResponse":
        return cls(
            market_id=r.market_id,
            winning_outcome=r.winning_outcome,
            winning_outcome_name=outcome_name,
            total_pool=r.total_pool,
            net_pool=r.net_pool,
            house_fee=r.house_fee,
            total_paid_out=r.total_paid_out,
            rounding_loss=r.rounding_loss,
            payouts=dict(r.payouts),
        )


class CreditRequest(BaseModel):
    amount: int = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class PlayerStats(BaseModel):
    bettor_id: str
    total_bets: int
    total_wagered: int
    total_won: int
    correct_predictions: int
    accuracy: float
    current_streak: int
    best_streak: int
    last_bet_time: datetime | None


class LeaderboardEntry(BaseModel):
    rank: int
    bettor_id: str
    accuracy: float
    total_bets: int
    total_won: int
    current_streak: int
    best_streak: int


class PlatformStats(BaseModel):
    total_markets: int
    total_bets: int
    total_volume: int
    total_paid_out: int
    total_players: int
    biggest_payout: int
    biggest_winner: str | None
