"""SqlBalanceBook: gold balances in PostgreSQL.

Debits use a guarded UPDATE ... RETURNING: 0 rows back means the bettor
did not have enough gold, and nothing was written.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_common.errors import InsufficientBalanceError

_GET_BALANCE_SQL = text("SELECT balance FROM gold_balances WHERE bettor_id = :bettor_id")

_CREDIT_SQL = text("""
    INSERT INTO gold_balances (bettor_id, balance)
    VALUES (:bettor_id, :amount)
    ON CONFLICT (bettor_id) DO UPDATE
        SET balance = gold_balances.balance + :amount,
            version = gold_balances.version + 1,
            updated_at = NOW()
    RETURNING balance
""")

_DEBIT_SQL = text("""
    UPDATE gold_balances
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE bettor_id = :bettor_id AND balance >= :amount
    RETURNING balance
""")


class SqlBalanceBook:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_available(self, bettor_id: str) -> int:
        async with self._session_factory() as db:
            balance = (await db.execute(_GET_BALANCE_SQL, {"bettor_id": bettor_id})).scalar_one_or_none()
            return balance or 0

    async def adjust(self, bettor_id: str, delta: int) -> int:
        async with self._session_factory() as db, db.begin():
            if delta >= 0:
                row = (await db.execute(_CREDIT_SQL, {"bettor_id": bettor_id, "amount": delta})).fetchone()
                return int(row.balance)
            row = (await db.execute(_DEBIT_SQL, {"bettor_id": bettor_id, "amount": -delta})).fetchone()
            if row is None:
                available = (
                    await db.execute(_GET_BALANCE_SQL, {"bettor_id": bettor_id})
                ).scalar_one_or_none()
                raise InsufficientBalanceError(-delta, available or 0)
            return int(row.balance)
