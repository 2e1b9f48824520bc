"""003: create gold_balances table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE gold_balances (
            bettor_id       VARCHAR(128)    PRIMARY KEY,
            balance         BIGINT          NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_gold_balances_gte_0 CHECK (balance >= 0)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS gold_balances;")
