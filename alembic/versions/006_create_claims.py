"""006: create claims table

Revision ID: 006
Revises: 005
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE claims (
            id              BIGINT          GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            pda             VARCHAR(44),
            dividend_id     BIGINT          NOT NULL REFERENCES dividends (id),
            wallet          VARCHAR(44)     NOT NULL,
            amount          BIGINT          NOT NULL,
            slot            BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_claims_dividend_wallet UNIQUE (dividend_id, wallet),
            CONSTRAINT uq_claims_pda            UNIQUE (pda),
            CONSTRAINT ck_claims_amount_gte_0   CHECK (amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_claims_wallet_time ON claims (wallet, created_at DESC);")
    op.execute(
        "COMMENT ON COLUMN claims.pda IS 'Claim PDA when the transaction accounts were available; (dividend_id, wallet) is the natural key';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS claims CASCADE;")
