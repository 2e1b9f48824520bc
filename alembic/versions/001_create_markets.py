"""001: create markets table

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE markets (
            id                  BIGINT          PRIMARY KEY,
            question            VARCHAR(500)    NOT NULL,
            outcomes            TEXT[]          NOT NULL,
            pools               BIGINT[]        NOT NULL,
            total_pool          BIGINT          NOT NULL DEFAULT 0,
            betting_deadline    TIMESTAMPTZ     NOT NULL,
            resolution_time     TIMESTAMPTZ     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            house_fee_bps       INT             NOT NULL DEFAULT 500,
            winning_outcome     INT,
            market_type         VARCHAR(20)     NOT NULL DEFAULT 'COMMUNITY',
            oracle_type         VARCHAR(20)     NOT NULL DEFAULT 'GAME_SERVER',
            creator             VARCHAR(128)    NOT NULL DEFAULT '',
            tags                TEXT[]          NOT NULL DEFAULT '{}',
            featured            BOOLEAN         NOT NULL DEFAULT FALSE,
            total_bets          INT             NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_outcome_count CHECK (cardinality(outcomes) >= 2),
            CONSTRAINT ck_markets_pools_len     CHECK (cardinality(pools) = cardinality(outcomes)),
            CONSTRAINT ck_markets_total_gte_0   CHECK (total_pool >= 0),
            CONSTRAINT ck_markets_fee           CHECK (house_fee_bps >= 0 AND house_fee_bps <= 10000),
            CONSTRAINT ck_markets_status CHECK (status IN ('ACTIVE', 'RESOLVED', 'CANCELLED')),
            CONSTRAINT ck_markets_winner CHECK (
                (status = 'RESOLVED') = (winning_outcome IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status ON markets (status);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Parimutuel markets: outcomes, per-outcome pools, lifecycle state';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
