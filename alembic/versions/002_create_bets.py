"""002: create bets table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id                  BIGINT          PRIMARY KEY,
            market_id           BIGINT          NOT NULL REFERENCES markets (id),
            outcome_index       INT             NOT NULL,
            bettor_id           VARCHAR(128)    NOT NULL,
            amount              BIGINT          NOT NULL,
            odds_at_bet         BIGINT          NOT NULL,
            potential_payout    BIGINT          NOT NULL,
            placed_at           TIMESTAMPTZ     NOT NULL,
            claimed             BOOLEAN         NOT NULL DEFAULT FALSE,
            claimed_at          TIMESTAMPTZ,
            CONSTRAINT ck_bets_amount_gt_0     CHECK (amount > 0),
            CONSTRAINT ck_bets_outcome_gte_0   CHECK (outcome_index >= 0),
            CONSTRAINT ck_bets_claimed_at CHECK (claimed = (claimed_at IS NOT NULL))
        );
    """)
    op.execute("CREATE INDEX idx_bets_market ON bets (market_id, placed_at);")
    op.execute("CREATE INDEX idx_bets_bettor ON bets (bettor_id, placed_at);")
    op.execute("COMMENT ON TABLE bets IS 'Append-only bet ledger; only claimed/claimed_at ever change';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets;")
