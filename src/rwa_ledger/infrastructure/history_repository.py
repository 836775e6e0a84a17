"""Activity feed and table statistics."""
import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

# One merged, newest-first feed so limit/offset page across all kinds.
# Dividends are those of assets the wallet currently holds.
_HISTORY_SQL = text("""
    SELECT * FROM (
        SELECT 'trade' AS kind, t.id, t.created_at, t.mint, a.ticker,
               json_build_object(
                   'side', t.side, 'amount', t.amount,
                   'price_usdc', t.price_usdc, 'signature', t.sig
               ) AS data
        FROM trades t
        LEFT JOIN assets a ON a.mint = t.mint
        WHERE CAST(:include_trades AS BOOLEAN) AND t.wallet = :wallet

        UNION ALL

        SELECT 'claim' AS kind, c.id, c.created_at, d.mint, a.ticker,
               json_build_object(
                   'dividend', d.pda, 'claim', c.pda, 'amount', c.amount
               ) AS data
        FROM claims c
        JOIN dividends d ON d.id = c.dividend_id
        LEFT JOIN assets a ON a.mint = d.mint
        WHERE CAST(:include_claims AS BOOLEAN) AND c.wallet = :wallet

        UNION ALL

        SELECT 'dividend' AS kind, d.id, d.created_at, d.mint, a.ticker,
               json_build_object(
                   'dividend', d.pda, 'index', d."index",
                   'total_amount', d.total_amount, 'is_closed', d.is_closed
               ) AS data
        FROM dividends d
        JOIN positions p ON p.mint = d.mint AND p.wallet = :wallet AND p.shares > 0
        LEFT JOIN assets a ON a.mint = d.mint
        WHERE CAST(:include_dividends AS BOOLEAN)
    ) feed
    ORDER BY created_at DESC, kind, id DESC
    LIMIT :limit OFFSET :offset
""")

_STATS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM assets)                AS assets,
        (SELECT COUNT(*) FROM trades)                AS trades,
        (SELECT COUNT(*) FROM positions)             AS positions,
        (SELECT COUNT(*) FROM dividends)             AS dividends,
        (SELECT COUNT(*) FROM claims)                AS claims,
        (SELECT COUNT(*) FROM indexer_dead_letters)  AS dead_letters
""")


class HistoryRepository:
    async def list_history(
        self,
        db: AsyncSession,
        wallet: str,
        kinds: set[str],
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        rows = (
            await db.execute(
                _HISTORY_SQL,
                {
                    "wallet": wallet,
                    "include_trades": "trades" in kinds,
                    "include_claims": "claims" in kinds,
                    "include_dividends": "dividends" in kinds,
                    "limit": limit,
                    "offset": offset,
                },
            )
        ).fetchall()
        return [
            {
                "id": r.id,
                "type": r.kind,
                "wallet": wallet,
                "mint": r.mint,
                "ticker": r.ticker,
                "data": r.data if isinstance(r.data, dict) else json.loads(r.data),
                "created_at": r.created_at.isoformat(),
            }
            for r in rows
        ]

    async def stats(self, db: AsyncSession) -> dict[str, int]:
        row = (await db.execute(_STATS_SQL)).fetchone()
        return {key: int(value) for key, value in row._mapping.items()}  # type: ignore[union-attr]
