"""Market invariant verification around every pool mutation and settlement.

Violations are programming errors, never user errors: they raise
InvariantViolationError and abort the operation in progress.

INV-1: len(pools) == len(outcomes)
INV-2: every pool >= 0
INV-3: total_pool == sum(pools)
INV-4: sum(payouts) + house_fee <= total_pool
INV-5: floor-rounding loss <= number of winning bets
"""

import logging

from src.pm_common.errors import InvariantViolationError
from src.pm_market.domain.models import Market, ResolutionResult

logger = logging.getLogger(__name__)


def verify_pool_invariant(market: Market) -> None:
    if len(market.pools) != len(market.outcomes):
        raise InvariantViolationError(
            f"INV-1 market={market.id}: {len(market.pools)} pools for "
            f"{len(market.outcomes)} outcomes"
        )
    if any(p < 0 for p in market.pools):
        raise InvariantViolationError(f"INV-2 market={market.id}: negative pool {market.pools}")
    pool_sum = sum(market.pools)
    if market.total_pool != pool_sum:
        raise InvariantViolationError(
            f"INV-3 market={market.id}: total_pool={market.total_pool} != sum(pools)={pool_sum}"
        )
    logger.debug("Pool invariants OK: market=%s, total=%d", market.id, market.total_pool)


def verify_settlement_conservation(result: ResolutionResult, winning_bets: int) -> None:
    paid = result.total_paid_out
    if paid + result.house_fee > result.total_pool:
        raise InvariantViolationError(
            f"INV-4 market={result.market_id}: paid({paid}) + fee({result.house_fee}) "
            f"> total_pool({result.total_pool})"
        )
    if result.rounding_loss > winning_bets:
        raise InvariantViolationError(
            f"INV-5 market={result.market_id}: rounding loss {result.rounding_loss} "
            f"exceeds winning bet count {winning_bets}"
        )
    logger.debug(
        "Settlement conserved: market=%s, paid=%d, fee=%d, loss=%d",
        result.market_id, paid, result.house_fee, result.rounding_loss,
    )
