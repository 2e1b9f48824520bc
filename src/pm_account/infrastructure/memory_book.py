"""In-process gold balances for local runs and tests."""

import asyncio
from collections.abc import Mapping

from src.pm_common.errors import InsufficientBalanceError


class InMemoryBalanceBook:
    def __init__(self, initial: Mapping[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get_available(self, bettor_id: str) -> int:
        return self._balances.get(bettor_id, 0)

    async def adjust(self, bettor_id: str, delta: int) -> int:
        async with self._lock:
            current = self._balances.get(bettor_id, 0)
            if current + delta < 0:
                raise InsufficientBalanceError(-delta, current)
            self._balances[bettor_id] = current + delta
            return current + delta
