"""SqlWageringRepository: concrete implementation of WageringRepositoryProtocol.

All queries use raw text() SQL (no ORM). Each method opens its own session
and commits one transaction; record_bet writes the bet row and the market's
pools together so the pool read-then-write is never split.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_common.errors import AlreadyClaimedError, MarketNotFoundError
from src.pm_market.domain.models import Bet, Market

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_INSERT_MARKET_SQL = text("""
    INSERT INTO markets
        (id, question, outcomes, pools, total_pool,
         betting_deadline, resolution_time, status, house_fee_bps,
         winning_outcome, market_type, oracle_type, creator, tags, featured,
         total_bets, created_at, resolved_at)
    VALUES
        (:id, :question, :outcomes, :pools, :total_pool,
         :betting_deadline, :resolution_time, :status, :house_fee_bps,
         :winning_outcome, :market_type, :oracle_type, :creator, :tags, :featured,
         :total_bets, :created_at, :resolved_at)
""")

_INSERT_BET_SQL = text("""
    INSERT INTO bets
        (id, market_id, outcome_index, bettor_id, amount,
         odds_at_bet, potential_payout, placed_at, claimed)
    VALUES
        (:id, :market_id, :outcome_index, :bettor_id, :amount,
         :odds_at_bet, :potential_payout, :placed_at, FALSE)
""")

_UPDATE_POOLS_SQL = text("""
    UPDATE markets
    SET pools = :pools,
        total_pool = :total_pool,
        total_bets = total_bets + 1,
        updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE markets
    SET status = :status,
        winning_outcome = :winning_outcome,
        resolved_at = :resolved_at,
        updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
""")

_MARK_CLAIMED_SQL = text("""
    UPDATE bets
    SET claimed = TRUE, claimed_at = NOW()
    WHERE id = ANY(:bet_ids) AND claimed = FALSE
""")

_LOAD_MARKETS_SQL = text("""
    SELECT id, question, outcomes, pools, total_pool,
           betting_deadline, resolution_time, status, house_fee_bps,
           winning_outcome, market_type, oracle_type, creator, tags, featured,
           total_bets, created_at, resolved_at
    FROM markets
    ORDER BY id
""")

_LOAD_BETS_SQL = text("""
    SELECT id, market_id, outcome_index, bettor_id, amount,
           odds_at_bet, potential_payout, placed_at, claimed
    FROM bets
    ORDER BY id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(r: Any) -> Market:
    return Market(
        id=r.id,
        question=r.question,
        outcomes=tuple(r.outcomes),
        pools=[int(p) for p in r.pools],
        total_pool=int(r.total_pool),
        betting_deadline=r.betting_deadline,
        resolution_time=r.resolution_time,
        status=r.status,
        house_fee_bps=r.house_fee_bps,
        winning_outcome=r.winning_outcome,
        market_type=r.market_type,
        oracle_type=r.oracle_type,
        creator=r.creator,
        tags=tuple(r.tags or ()),
        featured=r.featured,
        total_bets=r.total_bets,
        created_at=r.created_at,
        resolved_at=r.resolved_at,
    )


def _row_to_bet(r: Any) -> Bet:
    return Bet(
        id=r.id,
        market_id=r.market_id,
        outcome_index=r.outcome_index,
        bettor_id=r.bettor_id,
        amount=int(r.amount),
        odds_at_bet=int(r.odds_at_bet),
        potential_payout=int(r.potential_payout),
        timestamp=r.placed_at,
        claimed=r.claimed,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlWageringRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save_market(self, market: Market) -> None:
        async with self._session_factory() as db, db.begin():
            await db.execute(
                _INSERT_MARKET_SQL,
                {
                    "id": market.id,
                    "question": market.question,
                    "outcomes": list(market.outcomes),
                    "pools": list(market.pools),
                    "total_pool": market.total_pool,
                    "betting_deadline": market.betting_deadline,
                    "resolution_time": market.resolution_time,
                    "status": market.status,
                    "house_fee_bps": market.house_fee_bps,
                    "winning_outcome": market.winning_outcome,
                    "market_type": market.market_type,
                    "oracle_type": market.oracle_type,
                    "creator": market.creator,
                    "tags": list(market.tags),
                    "featured": market.featured,
                    "total_bets": market.total_bets,
                    "created_at": market.created_at,
                    "resolved_at": market.resolved_at,
                },
            )

    async def record_bet(self, bet: Bet, pools: Sequence[int], total_pool: int) -> None:
        async with self._session_factory() as db, db.begin():
            result = await db.execute(
                _UPDATE_POOLS_SQL,
                {"market_id": bet.market_id, "pools": list(pools), "total_pool": total_pool},
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                raise MarketNotFoundError(bet.market_id)
            await db.execute(
                _INSERT_BET_SQL,
                {
                    "id": bet.id,
                    "market_id": bet.market_id,
                    "outcome_index": bet.outcome_index,
                    "bettor_id": bet.bettor_id,
                    "amount": bet.amount,
                    "odds_at_bet": bet.odds_at_bet,
                    "potential_payout": bet.potential_payout,
                    "placed_at": bet.timestamp,
                },
            )

    async def update_market_status(
        self,
        market_id: int,
        status: str,
        winning_outcome: int | None,
        resolved_at: datetime | None,
    ) -> None:
        async with self._session_factory() as db, db.begin():
            result = await db.execute(
                _UPDATE_STATUS_SQL,
                {
                    "market_id": market_id,
                    "status": status,
                    "winning_outcome": winning_outcome,
                    "resolved_at": resolved_at,
                },
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                raise MarketNotFoundError(market_id)

    async def mark_bets_claimed(self, bet_ids: Sequence[int]) -> None:
        async with self._session_factory() as db, db.begin():
            result = await db.execute(_MARK_CLAIMED_SQL, {"bet_ids": list(bet_ids)})
            # Partial update rolls back with the raised error
            if result.rowcount != len(bet_ids):  # type: ignore[attr-defined]
                raise AlreadyClaimedError(bet_ids[0])

    async def load_markets(self) -> list[Market]:
        async with self._session_factory() as db:
            rows = (await db.execute(_LOAD_MARKETS_SQL)).fetchall()
            return [_row_to_market(r) for r in rows]

    async def load_bets(self) -> list[Bet]:
        async with self._session_factory() as db:
            rows = (await db.execute(_LOAD_BETS_SQL)).fetchall()
            return [_row_to_bet(r) for r in rows]
