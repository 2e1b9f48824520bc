"""Market settlement: freeze pools, compute payouts, pay claims.

Payout for a winning bet (floor division throughout):
    net_pool = floor(total_pool * (10000 - fee_bps) / 10000)
    payout   = floor(stake * net_pool / pools[winning_outcome])

Nobody backed the winner: no payouts, the whole pool is retained as fee.
Cancelled market: every bet refunds its full stake, no fee.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from src.pm_clearing.domain.invariants import (
    verify_pool_invariant,
    verify_settlement_conservation,
)
from src.pm_common.errors import (
    AlreadyResolvedError,
    InvalidOutcomeError,
    MarketNotResolvedError,
)
from src.pm_common.gold import apply_fee
from src.pm_ledger.domain.ledger import BetLedger
from src.pm_ledger.domain.repository import WageringRepositoryProtocol
from src.pm_market.domain.models import Bet, Market, ResolutionResult
from src.pm_market.domain.pool import PoolState, snapshot
from src.pm_pricing.domain.odds import payout_for_stake

logger = logging.getLogger(__name__)


def compute_settlement(
    state: PoolState, winning_outcome: int, bets: Iterable[Bet]
) -> ResolutionResult:
    """Pure payout computation against a frozen pool snapshot."""
    if not (0 <= winning_outcome < state.outcome_count):
        raise InvalidOutcomeError(winning_outcome, state.outcome_count)

    winning_pool = state.pools[winning_outcome]
    if winning_pool == 0:
        return ResolutionResult(
            market_id=state.market_id,
            winning_outcome=winning_outcome,
            total_pool=state.total_pool,
            net_pool=0,
            winning_pool=0,
            house_fee=state.total_pool,
        )

    net_pool = apply_fee(state.total_pool, state.house_fee_bps)
    payouts = {
        b.id: payout_for_stake(b.amount, winning_pool, state.total_pool, state.house_fee_bps)
        for b in bets
        if b.market_id == state.market_id and b.outcome_index == winning_outcome
    }
    return ResolutionResult(
        market_id=state.market_id,
        winning_outcome=winning_outcome,
        total_pool=state.total_pool,
        net_pool=net_pool,
        winning_pool=winning_pool,
        house_fee=state.total_pool - net_pool,
        payouts=payouts,
    )


class SettlementEngine:
    def __init__(self, ledger: BetLedger, repo: WageringRepositoryProtocol) -> None:
        self._ledger = ledger
        self._repo = repo
        self._results: dict[int, ResolutionResult] = {}

    def result_for(self, market_id: int) -> ResolutionResult | None:
        return self._results.get(market_id)

    async def resolve(self, market: Market, winning_outcome: int, now: datetime) -> ResolutionResult:
        if market.status != "ACTIVE":
            raise AlreadyResolvedError(market.id, market.status)
        if not (0 <= winning_outcome < market.outcome_count):
            raise InvalidOutcomeError(winning_outcome, market.outcome_count)
        verify_pool_invariant(market)

        result = self._settle(market, winning_outcome)
        await self._repo.update_market_status(market.id, "RESOLVED", winning_outcome, now)

        market.status = "RESOLVED"
        market.winning_outcome = winning_outcome
        market.resolved_at = now
        self._results[market.id] = result
        logger.info(
            "Market %s resolved: outcome=%d total=%d net=%d fee=%d winners=%d",
            market.id, winning_outcome, result.total_pool, result.net_pool,
            result.house_fee, len(result.payouts),
        )
        return result

    async def cancel(self, market: Market, now: datetime) -> None:
        if market.status != "ACTIVE":
            raise AlreadyResolvedError(market.id, market.status)
        verify_pool_invariant(market)
        await self._repo.update_market_status(market.id, "CANCELLED", None, now)
        market.status = "CANCELLED"
        market.resolved_at = now
        logger.info("Market %s cancelled: %d gold refundable", market.id, market.total_pool)

    def payout_for(self, market: Market, bet: Bet) -> int:
        """Gold owed for one bet once the market is terminal (claimed or not)."""
        if market.status == "CANCELLED":
            return bet.amount
        if market.status == "RESOLVED":
            result = self._results.get(market.id)
            if result is not None:
                return result.payouts.get(bet.id, 0)
        return 0

    def is_claimable(self, market: Market, bet: Bet) -> bool:
        if bet.claimed:
            return False
        if market.status == "CANCELLED":
            return True
        return market.status == "RESOLVED" and bet.outcome_index == market.winning_outcome

    def owed_bets(self, market: Market, bettor_id: str) -> list[Bet]:
        """Unclaimed bets of this bettor that pay out on a terminal market."""
        if market.status == "ACTIVE":
            raise MarketNotResolvedError(market.id)
        return [
            b for b in self._ledger.bets_for_market(market.id)
            if b.bettor_id == bettor_id and self.is_claimable(market, b)
        ]

    async def claim(self, market: Market, bettor_id: str) -> int:
        """Mark every unclaimed eligible bet of this bettor; 0 when nothing is owed."""
        owed = self.owed_bets(market, bettor_id)
        if not owed:
            return 0

        total = sum(self.payout_for(market, b) for b in owed)
        await self._ledger.mark_claimed_many([b.id for b in owed])
        logger.info(
            "Claim: market=%s bettor=%s bets=%d payout=%d",
            market.id, bettor_id, len(owed), total,
        )
        return total

    def restore(self, market: Market) -> None:
        """Recompute payouts for a RESOLVED market from its persisted frozen pools."""
        if market.status == "RESOLVED" and market.winning_outcome is not None:
            self._results[market.id] = self._settle(market, market.winning_outcome)

    def _settle(self, market: Market, winning_outcome: int) -> ResolutionResult:
        bets = self._ledger.bets_for_market(market.id)
        result = compute_settlement(snapshot(market), winning_outcome, bets)
        verify_settlement_conservation(
            result, sum(1 for b in bets if b.outcome_index == winning_outcome)
        )
        return result
