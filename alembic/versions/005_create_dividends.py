"""005: create dividends table

Revision ID: 005
Revises: 004
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE dividends (
            id                   BIGINT       GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            pda                  VARCHAR(44)  NOT NULL,
            mint                 VARCHAR(44)  NOT NULL,
            "index"              INT          NOT NULL,
            total_amount         BIGINT       NOT NULL,
            supply_circ_at_open  BIGINT       NOT NULL,
            is_closed            BOOLEAN      NOT NULL DEFAULT FALSE,
            closed_at            TIMESTAMPTZ,
            slot                 BIGINT       NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_dividends_pda          UNIQUE (pda),
            CONSTRAINT ck_dividends_total_gte_0  CHECK (total_amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_dividends_mint_time ON dividends (mint, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS dividends CASCADE;")
