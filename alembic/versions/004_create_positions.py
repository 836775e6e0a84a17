"""004: create positions table

Revision ID: 004
Revises: 003
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # No CHECK on shares: a sell may take a row to <= 0 before it is deleted
    # in the same transaction.
    op.execute("""
        CREATE TABLE positions (
            id              BIGINT          GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            wallet          VARCHAR(44)     NOT NULL,
            mint            VARCHAR(44)     NOT NULL,
            shares          BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_positions_wallet_mint UNIQUE (wallet, mint)
        );
    """)
    op.execute("CREATE INDEX idx_positions_mint ON positions (mint);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE positions IS 'Materialized holdings; reconstructible from trades';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
