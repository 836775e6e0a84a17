"""007: create indexer_dead_letters table

Revision ID: 007
Revises: 006
Create Date: 2026-03-02
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE indexer_dead_letters (
            id              BIGINT          GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            signature       VARCHAR(88)     NOT NULL,
            slot            BIGINT          NOT NULL DEFAULT 0,
            event_name      VARCHAR(32)     NOT NULL,
            payload         JSONB           NOT NULL,
            error           TEXT            NOT NULL,
            attempts        INT             NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_dead_letters_signature ON indexer_dead_letters (signature);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS indexer_dead_letters CASCADE;")
