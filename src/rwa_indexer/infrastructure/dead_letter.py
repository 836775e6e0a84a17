"""Dead-letter store for events that kept failing after retries."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_DEAD_LETTER_SQL = text("""
    INSERT INTO indexer_dead_letters
        (signature, slot, event_name, payload, error, attempts)
    VALUES
        (:signature, :slot, :event_name, CAST(:payload AS JSONB), :error, :attempts)
    RETURNING id
""")

_LIST_DEAD_LETTERS_SQL = text("""
    SELECT id, signature, slot, event_name, payload, error, attempts, created_at
    FROM indexer_dead_letters
    ORDER BY id DESC
    LIMIT :limit
""")


class DeadLetterRepository:
    async def insert(
        self,
        db: AsyncSession,
        signature: str,
        slot: int,
        event_name: str,
        payload: dict[str, Any],
        error: str,
        attempts: int,
    ) -> int:
        result = await db.execute(
            _INSERT_DEAD_LETTER_SQL,
            {
                "signature": signature,
                "slot": slot,
                "event_name": event_name,
                "payload": json.dumps(payload),
                "error": error[:2000],
                "attempts": attempts,
            },
        )
        return int(result.scalar_one())

    async def list_recent(self, db: AsyncSession, limit: int = 20) -> list[dict[str, Any]]:
        result = await db.execute(_LIST_DEAD_LETTERS_SQL, {"limit": limit})
        return [dict(row._mapping) for row in result.fetchall()]
