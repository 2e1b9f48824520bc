# src/pm_ledger/domain/repository.py
"""Repository Protocol: the transactional boundary the engine persists through.

Every write is awaited BEFORE the in-memory record changes, so a failed
write leaves the engine's state untouched. Implementations must make each
call a single transaction (record_bet writes the bet row and the market's
new pools together).
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from src.pm_market.domain.models import Bet, Market


class WageringRepositoryProtocol(Protocol):
    async def save_market(self, market: Market) -> None: ...

    async def record_bet(self, bet: Bet, pools: Sequence[int], total_pool: int) -> None: ...

    async def update_market_status(
        self,
        market_id: int,
        status: str,
        winning_outcome: int | None,
        resolved_at: datetime | None,
    ) -> None: ...

    async def mark_bets_claimed(self, bet_ids: Sequence[int]) -> None: ...

    async def load_markets(self) -> list[Market]: ...

    async def load_bets(self) -> list[Bet]: ...
