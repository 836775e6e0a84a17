"""002: create assets table

Revision ID: 002
Revises: 001
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE assets (
            id              BIGINT          GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            mint            VARCHAR(44)     NOT NULL,
            address         VARCHAR(44),
            ticker          VARCHAR(16),
            issuer          VARCHAR(44),
            usdc_mint       VARCHAR(44),
            decimals        SMALLINT,
            price_usdc      BIGINT          NOT NULL DEFAULT 0,
            total_supply    BIGINT          NOT NULL DEFAULT 0,
            free_float      BIGINT          NOT NULL DEFAULT 0,
            last_slot       BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_assets_mint               UNIQUE (mint),
            CONSTRAINT uq_assets_address            UNIQUE (address),
            CONSTRAINT ck_assets_price_gte_0        CHECK (price_usdc >= 0),
            CONSTRAINT ck_assets_free_float_range   CHECK (free_float >= 0 AND free_float <= total_supply)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_assets_updated_at
            BEFORE UPDATE ON assets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE assets IS 'Registry Asset accounts; chain-authored columns owned by asset sync';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS assets CASCADE;")
