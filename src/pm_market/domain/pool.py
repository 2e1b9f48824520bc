"""Pool Model: read-only projections of a market's outcome pools.

``PoolState`` is a frozen snapshot taken at one instant; everything
downstream (odds, previews, settlement) works on snapshots so that the
live ``Market`` record is only ever mutated by the ledger.
"""

from dataclasses import dataclass

from src.pm_market.domain.models import Market


@dataclass(frozen=True)
class PoolState:
    market_id: int
    pools: tuple[int, ...]
    total_pool: int
    house_fee_bps: int
    status: str

    @property
    def outcome_count(self) -> int:
        return len(self.pools)


def current_pools(market: Market) -> tuple[int, ...]:
    return tuple(market.pools)


def current_total(market: Market) -> int:
    return market.total_pool


def snapshot(market: Market) -> PoolState:
    return PoolState(
        market_id=market.id,
        pools=tuple(market.pools),
        total_pool=market.total_pool,
        house_fee_bps=market.house_fee_bps,
        status=market.status,
    )
