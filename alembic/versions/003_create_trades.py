"""003: create trades table

Revision ID: 003
Revises: 002
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id              BIGINT          GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            sig             VARCHAR(88)     NOT NULL,
            mint            VARCHAR(44)     NOT NULL,
            side            VARCHAR(4)      NOT NULL,
            wallet          VARCHAR(44)     NOT NULL,
            amount          BIGINT          NOT NULL,
            price_usdc      BIGINT          NOT NULL,
            slot            BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_trades_sig            UNIQUE (sig),
            CONSTRAINT ck_trades_side           CHECK (side IN ('buy', 'sell')),
            CONSTRAINT ck_trades_amount_gte_0   CHECK (amount >= 0),
            CONSTRAINT ck_trades_price_gte_0    CHECK (price_usdc >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_trades_wallet_mint_time ON trades (wallet, mint, created_at);")
    op.execute("CREATE INDEX idx_trades_mint_time ON trades (mint, created_at DESC);")
    op.execute("COMMENT ON TABLE trades IS 'Append-only; price_usdc is total consideration, not per share';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
