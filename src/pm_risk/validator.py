"""Bet Validator: gate-keeps bet placement without mutating anything.

Checks run in a fixed order so callers always see the most fundamental
rejection first: market state, outcome range, size limits, balance.
"""

from dataclasses import dataclass
from datetime import datetime

from src.pm_market.domain.models import Market
from src.pm_risk.rules.balance_check import check_balance
from src.pm_risk.rules.bet_limit import check_bet_limit
from src.pm_risk.rules.market_status import check_market_open
from src.pm_risk.rules.outcome_range import check_outcome_index


@dataclass(frozen=True)
class BetIntent:
    market_id: int
    outcome_index: int
    amount: int
    bettor_id: str
    available_balance: int


def validate_bet(
    market: Market,
    outcome_index: int,
    amount: int,
    bettor_id: str,
    available_balance: int,
    now: datetime,
) -> BetIntent:
    check_market_open(market, now)
    check_outcome_index(market, outcome_index)
    check_bet_limit(amount)
    check_balance(amount, available_balance)
    return BetIntent(
        market_id=market.id,
        outcome_index=outcome_index,
        amount=amount,
        bettor_id=bettor_id,
        available_balance=available_balance,
    )
