"""MarketLifecycleController: stateful orchestrator for every market.

State machine per market:
    ACTIVE --place_bet--> ACTIVE
    ACTIVE --resolve-->   RESOLVED   (terminal)
    ACTIVE --cancel-->    CANCELLED  (terminal)

Every mutation of a market (bet, resolve, cancel, claim) runs inside that
market's asyncio.Lock, so the validate-then-write sequence can never
interleave with another mutation of the same market. Different markets
never share a lock. Events are published after the lock is released.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from src.pm_account.domain.balance import BalanceAuthorityProtocol
from src.pm_clearing.domain.settlement import SettlementEngine
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.errors import InvalidOutcomeCountError, MarketNotFoundError
from src.pm_common.gold import BPS_DENOMINATOR, gold_to_display, validate_fee_bps
from src.pm_engine.events.bus import EventBus, EventPublisherProtocol
from src.pm_engine.events.models import (
    BigBetEvent,
    BigWinEvent,
    LastBet,
    MarketCancelledEvent,
    MarketResolvedEvent,
    NewMarketEvent,
    OddsUpdateEvent,
)
from src.pm_ledger.domain.ledger import BetLedger
from src.pm_ledger.domain.repository import WageringRepositoryProtocol
from src.pm_ledger.infrastructure.memory import MemoryWageringRepository
from src.pm_market.application.schemas import MarketSnapshot
from src.pm_market.domain.models import Bet, Market, OddsHistoryPoint, ResolutionResult
from src.pm_market.domain.pool import current_pools, current_total
from src.pm_pricing.domain.odds import (
    DEFAULT_HOUSE_FEE_BPS,
    BetPreview,
    calculate_odds,
    payout_multiplier,
    preview_bet,
)
from src.pm_risk.validator import validate_bet

logger = logging.getLogger(__name__)


@dataclass
class PlacedBet:
    bet: Bet
    market: Market  # detached copy, post-bet
    balance_after: int


class MarketLifecycleController:
    def __init__(
        self,
        balances: BalanceAuthorityProtocol,
        repo: WageringRepositoryProtocol | None = None,
        notifier: EventPublisherProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        default_fee_bps: int = DEFAULT_HOUSE_FEE_BPS,
        big_bet_threshold: int = 10_000,
        big_win_threshold: int = 25_000,
    ) -> None:
        self._balances = balances
        self._repo: WageringRepositoryProtocol = repo or MemoryWageringRepository()
        self._notifier: EventPublisherProtocol = notifier or EventBus()
        self._clock = clock
        self._default_fee_bps = default_fee_bps
        self._big_bet_threshold = big_bet_threshold
        self._big_win_threshold = big_win_threshold

        self._markets: dict[int, Market] = {}
        self._market_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._create_lock = asyncio.Lock()
        self._next_market_id = 1
        self._ledger = BetLedger(self._repo)
        self._settlement = SettlementEngine(self._ledger, self._repo)

    def _get_or_create_lock(self, market_id: int) -> asyncio.Lock:
        return self._market_locks[market_id]

    def _require(self, market_id: int) -> Market:
        market = self._markets.get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    @staticmethod
    def _copy(market: Market) -> Market:
        return replace(market, pools=list(market.pools))

    async def rebuild(self) -> None:
        """Load every market and bet from the repository on startup."""
        markets = await self._repo.load_markets()
        bets = await self._repo.load_bets()
        self._ledger.restore(markets, bets)
        for market in markets:
            self._markets[market.id] = market
            self._settlement.restore(market)
        self._next_market_id = max((m.id for m in markets), default=0) + 1
        logger.info("Rebuilt %d markets and %d bets from repository", len(markets), len(bets))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_market(
        self,
        question: str,
        outcomes: Sequence[str],
        betting_deadline: datetime,
        resolution_time: datetime,
        fee_bps: int | None = None,
        market_type: str = "COMMUNITY",
        oracle_type: str = "GAME_SERVER",
        creator: str = "",
        tags: Sequence[str] = (),
        featured: bool = False,
    ) -> Market:
        if len(outcomes) < 2:
            raise InvalidOutcomeCountError(len(outcomes))
        fee = self._default_fee_bps if fee_bps is None else fee_bps
        validate_fee_bps(fee)

        async with self._create_lock:
            market = Market(
                id=self._next_market_id,
                question=question,
                outcomes=tuple(outcomes),
                pools=[0] * len(outcomes),
                total_pool=0,
                betting_deadline=ensure_utc(betting_deadline),
                resolution_time=ensure_utc(resolution_time),
                status="ACTIVE",
                house_fee_bps=fee,
                created_at=self._clock(),
                market_type=market_type,
                oracle_type=oracle_type,
                creator=creator,
                tags=tuple(tags),
                featured=featured,
            )
            await self._repo.save_market(market)
            self._markets[market.id] = market
            self._next_market_id += 1
            created = self._copy(market)

        logger.info(
            "Market %s created: %r outcomes=%d fee_bps=%d deadline=%s",
            created.id, created.question, created.outcome_count, fee,
            created.betting_deadline.isoformat(),
        )
        await self._notifier.publish(NewMarketEvent(market=MarketSnapshot.from_domain(created)))
        return created

    async def place_bet(
        self, market_id: int, outcome_index: int, amount: int, bettor_id: str
    ) -> PlacedBet:
        self._require(market_id)
        async with self._get_or_create_lock(market_id):
            market = self._require(market_id)
            now = self._clock()
            available = await self._balances.get_available(bettor_id)
            intent = validate_bet(market, outcome_index, amount, bettor_id, available, now)

            balance_after = await self._balances.adjust(bettor_id, -amount)
            try:
                bet = await self._ledger.place_bet(market, intent, now)
            except Exception:
                await self._balances.adjust(bettor_id, amount)
                raise
            after = self._copy(market)

        await self._notifier.publish(
            OddsUpdateEvent(
                market_id=after.id,
                pools=list(after.pools),
                total_pool=after.total_pool,
                odds=calculate_odds(after.pools, after.total_pool, after.house_fee_bps),
                last_bet=LastBet(bettor_id=bettor_id, amount=amount, outcome_index=outcome_index),
            )
        )
        if amount >= self._big_bet_threshold:
            await self._notifier.publish(
                BigBetEvent(
                    market_id=after.id,
                    bettor_id=bettor_id,
                    amount=amount,
                    outcome_index=outcome_index,
                    outcome_name=after.outcomes[outcome_index],
                )
            )
        return PlacedBet(bet=bet, market=after, balance_after=balance_after)

    async def resolve(self, market_id: int, winning_outcome: int) -> ResolutionResult:
        self._require(market_id)
        async with self._get_or_create_lock(market_id):
            market = self._require(market_id)
            result = await self._settlement.resolve(market, winning_outcome, self._clock())
            fee_bps = market.house_fee_bps
            outcome_name = market.outcomes[winning_outcome]

        await self._notifier.publish(
            MarketResolvedEvent(
                market_id=market_id,
                winning_outcome=winning_outcome,
                winning_outcome_name=outcome_name,
                payout_multiplier=payout_multiplier(result.winning_pool, result.total_pool, fee_bps),
                total_paid_out=result.total_paid_out,
            )
        )
        return result

    async def cancel(self, market_id: int) -> None:
        self._require(market_id)
        async with self._get_or_create_lock(market_id):
            market = self._require(market_id)
            await self._settlement.cancel(market, self._clock())
        await self._notifier.publish(MarketCancelledEvent(market_id=market_id))

    async def claim(self, market_id: int, bettor_id: str) -> int:
        """Credit every unclaimed payout (or refund) of this bettor on one market."""
        self._require(market_id)
        async with self._get_or_create_lock(market_id):
            market = self._require(market_id)
            owed = self._settlement.owed_bets(market, bettor_id)
            staked = sum(b.amount for b in owed)
            payout = sum(self._settlement.payout_for(market, b) for b in owed)

            # Credit before marking; a failed mark takes the credit back.
            if payout > 0:
                await self._balances.adjust(bettor_id, payout)
            try:
                await self._settlement.claim(market, bettor_id)
            except Exception:
                if payout > 0:
                    await self._balances.adjust(bettor_id, -payout)
                raise
            refunded = market.status == "CANCELLED"

        if payout >= self._big_win_threshold and not refunded:
            await self._notifier.publish(
                BigWinEvent(
                    market_id=market_id,
                    bettor_id=bettor_id,
                    amount=payout,
                    multiplier=payout * BPS_DENOMINATOR // staked if staked else 0,
                )
            )
        return payout

    # ------------------------------------------------------------------
    # Reads (detached copies; callers never touch live records)
    # ------------------------------------------------------------------

    def get_market(self, market_id: int) -> Market:
        return self._copy(self._require(market_id))

    def list_markets(self) -> list[Market]:
        return [self._copy(m) for m in self._markets.values()]

    def current_pools(self, market_id: int) -> tuple[int, ...]:
        return current_pools(self._require(market_id))

    def current_total(self, market_id: int) -> int:
        return current_total(self._require(market_id))

    def odds(self, market_id: int) -> list[int]:
        market = self._require(market_id)
        return calculate_odds(market.pools, market.total_pool, market.house_fee_bps)

    def preview_bet(self, market_id: int, outcome_index: int, amount: int) -> BetPreview:
        market = self._require(market_id)
        return preview_bet(
            market.pools, market.total_pool, outcome_index, amount, market.house_fee_bps
        )

    def bets_for_bettor(self, bettor_id: str) -> tuple[Bet, ...]:
        return self._ledger.bets_for_bettor(bettor_id)

    def bets_for_market(self, market_id: int) -> tuple[Bet, ...]:
        self._require(market_id)
        return self._ledger.bets_for_market(market_id)

    def all_bets(self) -> tuple[Bet, ...]:
        return self._ledger.all_bets()

    def bettor_ids(self) -> list[str]:
        return self._ledger.bettor_ids()

    def odds_history(self, market_id: int) -> list[OddsHistoryPoint]:
        self._require(market_id)
        return self._ledger.odds_history(market_id)

    def resolution_for(self, market_id: int) -> ResolutionResult | None:
        self._require(market_id)
        return self._settlement.result_for(market_id)

    def payout_for(self, bet: Bet) -> int:
        """Gold a bet is worth once its market is terminal; 0 while ACTIVE or lost."""
        return self._settlement.payout_for(self._require(bet.market_id), bet)

    async def balance_of(self, bettor_id: str) -> int:
        return await self._balances.get_available(bettor_id)

    async def credit_gold(self, bettor_id: str, amount: int) -> int:
        balance = await self._balances.adjust(bettor_id, amount)
        logger.info("Credited %s to %s, balance=%d", gold_to_display(amount), bettor_id, balance)
        return balance
