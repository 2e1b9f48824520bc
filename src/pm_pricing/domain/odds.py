"""Parimutuel odds calculator.

Odds are the GROSS pool ratio in bps (10000 = 1.00x):
    odds[i] = floor(total_pool * 10000 / pools[i]),  0 when pools[i] == 0

The house fee is NOT folded into displayed odds; it is applied only to
payouts, which use the net pool:
    net_pool = floor(total * (10000 - fee_bps) / 10000)
    payout   = floor(stake * net_pool / outcome_pool)

All functions are pure and never touch a live Market record.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from src.pm_common.errors import InvalidOutcomeError
from src.pm_common.gold import BPS_DENOMINATOR, apply_fee

DEFAULT_HOUSE_FEE_BPS: int = 500  # 5%


@dataclass(frozen=True)
class BetPreview:
    payout: int
    old_odds: int
    new_odds: int
    slippage_pct: float


def _check_outcome(pools: Sequence[int], outcome_index: int) -> None:
    if not (0 <= outcome_index < len(pools)):
        raise InvalidOutcomeError(outcome_index, len(pools))


def outcome_odds(pool: int, total_pool: int) -> int:
    if pool == 0:
        return 0
    return total_pool * BPS_DENOMINATOR // pool


def calculate_odds(pools: Sequence[int], total_pool: int, fee_bps: int = DEFAULT_HOUSE_FEE_BPS) -> list[int]:
    """Per-outcome gross odds in bps. ``fee_bps`` is accepted but not applied."""
    return [outcome_odds(p, total_pool) for p in pools]


def implied_probability(odds_bps: int) -> int:
    """Integer percent implied by odds, rounded half-up: 40000 -> 25."""
    if odds_bps == 0:
        return 0
    # round(10000 / odds * 100) == round(1_000_000 / odds)
    return (2 * 1_000_000 + odds_bps) // (2 * odds_bps)


def payout_for_stake(stake: int, outcome_pool: int, total_pool: int, fee_bps: int) -> int:
    if outcome_pool == 0:
        return 0
    return stake * apply_fee(total_pool, fee_bps) // outcome_pool


def payout_multiplier(outcome_pool: int, total_pool: int, fee_bps: int) -> int:
    """Net payout per unit staked on an outcome, in bps (0 if nobody backed it)."""
    if outcome_pool == 0:
        return 0
    return apply_fee(total_pool, fee_bps) * BPS_DENOMINATOR // outcome_pool


def preview_bet(
    pools: Sequence[int],
    total_pool: int,
    outcome_index: int,
    added_amount: int,
    fee_bps: int = DEFAULT_HOUSE_FEE_BPS,
) -> BetPreview:
    """Project the effect of a hypothetical bet without mutating anything.

    The payout denominator is the POST-bet outcome pool, so the preview
    already reflects the bettor's own stake diluting their share.
    """
    _check_outcome(pools, outcome_index)
    old_odds = outcome_odds(pools[outcome_index], total_pool)
    if added_amount <= 0:
        return BetPreview(payout=0, old_odds=old_odds, new_odds=old_odds, slippage_pct=0.0)

    new_pools = list(pools)
    new_pools[outcome_index] += added_amount
    new_total = total_pool + added_amount

    payout = payout_for_stake(added_amount, new_pools[outcome_index], new_total, fee_bps)
    new_odds = calculate_odds(new_pools, new_total, fee_bps)[outcome_index]
    slippage = abs(new_odds - old_odds) / old_odds * 100 if old_odds > 0 else 0.0
    return BetPreview(payout=payout, old_odds=old_odds, new_odds=new_odds, slippage_pct=slippage)
