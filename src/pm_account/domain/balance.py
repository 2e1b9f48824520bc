"""Balance authority Protocol: the engine never owns gold custody.

``adjust`` must be one atomic read-modify-write that returns the new
balance and refuses to go below zero; the engine never computes a new
balance itself.
"""

from typing import Protocol


class BalanceAuthorityProtocol(Protocol):
    async def get_available(self, bettor_id: str) -> int: ...

    async def adjust(self, bettor_id: str, delta: int) -> int: ...
