"""Bet Ledger: append-only record of bets and the source of truth for pools.

Callers must hold the market's exclusive lock around place_bet and the
claim helpers; the ledger itself does no locking.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from src.pm_clearing.domain.invariants import verify_pool_invariant
from src.pm_common.errors import AlreadyClaimedError, BetNotFoundError, InvariantViolationError
from src.pm_ledger.domain.repository import WageringRepositoryProtocol
from src.pm_market.domain.models import Bet, Market, OddsHistoryPoint
from src.pm_market.domain.pool import snapshot
from src.pm_pricing.domain.odds import calculate_odds, preview_bet
from src.pm_risk.validator import BetIntent, validate_bet

logger = logging.getLogger(__name__)


def _ordered(bets: Iterable[Bet]) -> tuple[Bet, ...]:
    return tuple(replace(b) for b in sorted(bets, key=lambda b: (b.timestamp, b.id)))


class BetLedger:
    def __init__(self, repo: WageringRepositoryProtocol) -> None:
        self._repo = repo
        self._bets: dict[int, Bet] = {}
        self._by_market: dict[int, list[int]] = defaultdict(list)
        self._by_bettor: dict[str, list[int]] = defaultdict(list)
        self._history: dict[int, list[OddsHistoryPoint]] = defaultdict(list)
        self._next_id = 1

    async def place_bet(self, market: Market, intent: BetIntent, now: datetime) -> Bet:
        """Re-validate, persist, then apply the pool increment and append the bet."""
        validate_bet(
            market,
            intent.outcome_index,
            intent.amount,
            intent.bettor_id,
            intent.available_balance,
            now,
        )
        verify_pool_invariant(market)

        before = snapshot(market)
        odds_before = calculate_odds(before.pools, before.total_pool, before.house_fee_bps)
        preview = preview_bet(
            before.pools, before.total_pool, intent.outcome_index, intent.amount,
            before.house_fee_bps,
        )
        new_pools = list(before.pools)
        new_pools[intent.outcome_index] += intent.amount
        new_total = before.total_pool + intent.amount

        bet = Bet(
            id=self._next_id,
            market_id=market.id,
            outcome_index=intent.outcome_index,
            bettor_id=intent.bettor_id,
            amount=intent.amount,
            odds_at_bet=odds_before[intent.outcome_index],
            potential_payout=preview.payout,
            timestamp=now,
        )
        self._next_id += 1

        await self._repo.record_bet(bet, new_pools, new_total)

        market.pools = new_pools
        market.total_pool = new_total
        market.total_bets += 1
        self._append(bet)
        self._history[market.id].append(
            OddsHistoryPoint(
                timestamp=now,
                odds=calculate_odds(new_pools, new_total, market.house_fee_bps),
                total_pool=new_total,
            )
        )
        verify_pool_invariant(market)

        logger.info(
            "Bet %d: market=%s outcome=%d amount=%d bettor=%s total_pool=%d",
            bet.id, market.id, bet.outcome_index, bet.amount, bet.bettor_id, new_total,
        )
        return replace(bet)

    def bets_for_bettor(self, bettor_id: str) -> tuple[Bet, ...]:
        return _ordered(self._bets[i] for i in self._by_bettor.get(bettor_id, ()))

    def bets_for_market(self, market_id: int) -> tuple[Bet, ...]:
        return _ordered(self._bets[i] for i in self._by_market.get(market_id, ()))

    def all_bets(self) -> tuple[Bet, ...]:
        return _ordered(self._bets.values())

    def bettor_ids(self) -> list[str]:
        return sorted(self._by_bettor)

    def odds_history(self, market_id: int) -> list[OddsHistoryPoint]:
        return [replace(p, odds=list(p.odds)) for p in self._history.get(market_id, ())]

    def get_bet(self, bet_id: int) -> Bet:
        bet = self._bets.get(bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        return replace(bet)

    async def mark_claimed(self, bet_id: int) -> None:
        await self.mark_claimed_many([bet_id])

    async def mark_claimed_many(self, bet_ids: Sequence[int]) -> None:
        """Flip claimed false->true for every id, or for none of them."""
        for bet_id in bet_ids:
            bet = self._bets.get(bet_id)
            if bet is None:
                raise BetNotFoundError(bet_id)
            if bet.claimed:
                raise AlreadyClaimedError(bet_id)
        if len(set(bet_ids)) != len(bet_ids):
            raise AlreadyClaimedError(bet_ids[0])

        await self._repo.mark_bets_claimed(bet_ids)
        for bet_id in bet_ids:
            self._bets[bet_id].claimed = True

    def restore(self, markets: Sequence[Market], bets: Iterable[Bet]) -> None:
        """Rebuild indexes and odds history by replaying persisted bets in order.

        The replayed pools must match each market's stored pools exactly.
        """
        replayed: dict[int, list[int]] = {m.id: [0] * m.outcome_count for m in markets}
        fees = {m.id: m.house_fee_bps for m in markets}
        for bet in sorted(bets, key=lambda b: (b.timestamp, b.id)):
            if bet.market_id not in replayed:
                raise InvariantViolationError(f"bet {bet.id} references unknown market {bet.market_id}")
            pools = replayed[bet.market_id]
            pools[bet.outcome_index] += bet.amount
            self._append(replace(bet))
            total = sum(pools)
            self._history[bet.market_id].append(
                OddsHistoryPoint(
                    timestamp=bet.timestamp,
                    odds=calculate_odds(pools, total, fees[bet.market_id]),
                    total_pool=total,
                )
            )
            self._next_id = max(self._next_id, bet.id + 1)

        for market in markets:
            if replayed[market.id] != list(market.pools):
                raise InvariantViolationError(
                    f"market={market.id}: stored pools {market.pools} != "
                    f"replayed {replayed[market.id]}"
                )
            verify_pool_invariant(market)

    def _append(self, bet: Bet) -> None:
        self._bets[bet.id] = bet
        self._by_market[bet.market_id].append(bet.id)
        self._by_bettor[bet.bettor_id].append(bet.id)
