"""PredictionApplicationService: thin composition layer over the engine.

Translates between request/response schemas and the lifecycle controller.
Holds no state of its own; one instance lives on the application context.
"""

from src.pm_common.enums import MarketSortKey, SortOrder
from src.pm_engine.engine.lifecycle import MarketLifecycleController
from src.pm_market.application.schemas import (
    BetPreviewResponse,
    BetView,
    ClaimRequest,
    ClaimResponse,
    CreateMarketRequest,
    LeaderboardEntry,
    MarketDetailResponse,
    MarketFilters,
    MarketListResponse,
    MarketSnapshot,
    OddsHistoryOut,
    PlaceBetRequest,
    PlaceBetResponse,
    PlatformStats,
    PlayerStats,
    ResolutionResponse,
)
from src.pm_market.domain.models import Bet, Market
from src.pm_stats.application.service import PredictionStatsService

RECENT_BETS_LIMIT = 20

# Natural direction per sort key when the caller does not pass sort_order
_DEFAULT_ORDER = {
    MarketSortKey.DEADLINE: SortOrder.ASC,
    MarketSortKey.POOL: SortOrder.DESC,
    MarketSortKey.BETS: SortOrder.DESC,
    MarketSortKey.CREATED: SortOrder.DESC,
}


def _sort_value(m: Market, key: MarketSortKey) -> object:
    if key == MarketSortKey.POOL:
        return m.total_pool
    if key == MarketSortKey.BETS:
        return m.total_bets
    if key == MarketSortKey.CREATED:
        return m.created_at
    return m.betting_deadline


def _matches(m: Market, f: MarketFilters) -> bool:
    # status=None -> default ACTIVE; status='ALL' -> no filter
    status = None if f.status == "ALL" else (f.status or "ACTIVE")
    if status is not None and m.status != status:
        return False
    if f.market_type is not None and m.market_type != f.market_type.value:
        return False
    if f.featured is not None and m.featured != f.featured:
        return False
    if f.min_pool is not None and m.total_pool < f.min_pool:
        return False
    if f.search:
        query = f.search.lower()
        haystack = [m.question.lower(), *(o.lower() for o in m.outcomes)]
        if not any(query in text for text in haystack):
            return False
    return True


class PredictionApplicationService:
    def __init__(self, controller: MarketLifecycleController) -> None:
        self._controller = controller
        self._stats = PredictionStatsService(controller)

    def _bet_view(self, bet: Bet, market: Market | None = None) -> BetView:
        market = market or self._controller.get_market(bet.market_id)
        return BetView.from_domain(bet, market, self._controller.payout_for(bet))

    # --- Markets ---

    def list_markets(self, filters: MarketFilters) -> MarketListResponse:
        markets = [m for m in self._controller.list_markets() if _matches(m, filters)]
        order = filters.sort_order or _DEFAULT_ORDER[filters.sort_by]
        markets.sort(
            key=lambda m: (_sort_value(m, filters.sort_by), m.id),
            reverse=order == SortOrder.DESC,
        )
        start = (filters.page - 1) * filters.page_size
        page = markets[start:start + filters.page_size]
        return MarketListResponse(
            markets=[MarketSnapshot.from_domain(m) for m in page],
            total=len(markets),
            page=filters.page,
            page_size=filters.page_size,
        )

    def get_market(self, market_id: int) -> MarketSnapshot:
        return MarketSnapshot.from_domain(self._controller.get_market(market_id))

    def get_market_detail(self, market_id: int) -> MarketDetailResponse:
        market = self._controller.get_market(market_id)
        bets = self._controller.bets_for_market(market_id)
        recent = list(reversed(bets[-RECENT_BETS_LIMIT:]))
        return MarketDetailResponse(
            market=MarketSnapshot.from_domain(market),
            recent_bets=[self._bet_view(b, market) for b in recent],
            odds_history=[
                OddsHistoryOut.from_domain(p) for p in self._controller.odds_history(market_id)
            ],
        )

    def preview_bet(self, market_id: int, outcome_index: int, amount: int) -> BetPreviewResponse:
        preview = self._controller.preview_bet(market_id, outcome_index, amount)
        return BetPreviewResponse.from_preview(market_id, outcome_index, amount, preview)

    # --- Bets ---

    async def place_bet(self, req: PlaceBetRequest) -> PlaceBetResponse:
        placed = await self._controller.place_bet(
            req.market_id, req.outcome_index, req.amount, req.bettor_id
        )
        snapshot = MarketSnapshot.from_domain(placed.market)
        return PlaceBetResponse(
            bet=self._bet_view(placed.bet, placed.market),
            new_odds=snapshot.odds,
            pools=snapshot.pools,
            new_total_pool=snapshot.total_pool,
            balance_after=placed.balance_after,
        )

    async def claim(self, req: ClaimRequest) -> ClaimResponse:
        payout = await self._controller.claim(req.market_id, req.bettor_id)
        return ClaimResponse(
            market_id=req.market_id,
            bettor_id=req.bettor_id,
            payout=payout,
            balance_after=await self._controller.balance_of(req.bettor_id),
        )

    def bets_for_bettor(self, bettor_id: str) -> list[BetView]:
        return [self._bet_view(b) for b in self._controller.bets_for_bettor(bettor_id)]

    # --- Stats ---

    def player_stats(self, bettor_id: str) -> PlayerStats:
        return self._stats.player_stats(bettor_id)

    def leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        return self._stats.leaderboard(limit)

    def platform_stats(self) -> PlatformStats:
        return self._stats.platform_stats()

    # --- Admin ---

    async def create_market(self, req: CreateMarketRequest) -> MarketSnapshot:
        market = await self._controller.create_market(
            question=req.question,
            outcomes=req.outcomes,
            betting_deadline=req.betting_deadline,
            resolution_time=req.resolution_time,
            fee_bps=req.fee_bps,
            market_type=req.market_type.value,
            oracle_type=req.oracle_type.value,
            creator=req.creator,
            tags=req.tags,
            featured=req.featured,
        )
        return MarketSnapshot.from_domain(market)

    async def resolve(self, market_id: int, winning_outcome: int) -> ResolutionResponse:
        result = await self._controller.resolve(market_id, winning_outcome)
        market = self._controller.get_market(market_id)
        return ResolutionResponse.from_domain(result, market.outcomes[winning_outcome])

    async def cancel(self, market_id: int) -> MarketSnapshot:
        await self._controller.cancel(market_id)
        return self.get_market(market_id)

    async def credit_gold(self, bettor_id: str, amount: int) -> dict[str, int | str]:
        balance = await self._controller.credit_gold(bettor_id, amount)
        return {"bettor_id": bettor_id, "balance": balance}
