"""MemoryWageringRepository: keeps detached copies of every record.

Used when PERSISTENCE_ENABLED is off and in tests; a new controller built
on the same repository rebuilds exactly the state of the old one.
"""

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from src.pm_common.errors import AlreadyClaimedError, BetNotFoundError, MarketNotFoundError
from src.pm_market.domain.models import Bet, Market


class MemoryWageringRepository:
    def __init__(self) -> None:
        self._markets: dict[int, Market] = {}
        self._bets: dict[int, Bet] = {}

    async def save_market(self, market: Market) -> None:
        self._markets[market.id] = replace(market, pools=list(market.pools))

    async def record_bet(self, bet: Bet, pools: Sequence[int], total_pool: int) -> None:
        stored = self._markets.get(bet.market_id)
        if stored is None:
            raise MarketNotFoundError(bet.market_id)
        stored.pools = list(pools)
        stored.total_pool = total_pool
        stored.total_bets += 1
        self._bets[bet.id] = replace(bet)

    async def update_market_status(
        self,
        market_id: int,
        status: str,
        winning_outcome: int | None,
        resolved_at: datetime | None,
    ) -> None:
        stored = self._markets.get(market_id)
        if stored is None:
            raise MarketNotFoundError(market_id)
        stored.status = status
        stored.winning_outcome = winning_outcome
        stored.resolved_at = resolved_at

    async def mark_bets_claimed(self, bet_ids: Sequence[int]) -> None:
        for bet_id in bet_ids:
            if bet_id not in self._bets:
                raise BetNotFoundError(bet_id)
            if self._bets[bet_id].claimed:
                raise AlreadyClaimedError(bet_id)
        for bet_id in bet_ids:
            self._bets[bet_id].claimed = True

    async def load_markets(self) -> list[Market]:
        return [replace(m, pools=list(m.pools)) for m in sorted(self._markets.values(), key=lambda m: m.id)]

    async def load_bets(self) -> list[Bet]:
        return [replace(b) for b in sorted(self._bets.values(), key=lambda b: b.id)]
