"""Read-only trade and position queries."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_FILTER = """
    WHERE (CAST(:mint AS TEXT) IS NULL OR t.mint = CAST(:mint AS TEXT))
      AND (CAST(:wallet AS TEXT) IS NULL OR t.wallet = CAST(:wallet AS TEXT))
"""

_LIST_SQL = text(f"""
    SELECT t.id, t.sig, t.mint, a.ticker, t.side, t.wallet,
           t.amount, t.price_usdc, t.slot, t.created_at
    FROM trades t
    LEFT JOIN assets a ON a.mint = t.mint
    {_FILTER}
    ORDER BY t.created_at DESC, t.id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_SQL = text(f"""
    SELECT COUNT(*) FROM trades t
    {_FILTER}
""")


class TradesRepository:
    async def list_trades(
        self,
        db: AsyncSession,
        mint: str | None,
        wallet: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        params = {"mint": mint, "wallet": wallet}
        rows = (
            await db.execute(_LIST_SQL, {**params, "limit": limit, "offset": offset})
        ).fetchall()
        total = (await db.execute(_COUNT_SQL, params)).scalar_one()
        return [_row_to_dict(r) for r in rows], int(total)


def _row_to_dict(row: Any) -> dict[str, Any]:
    return {
        "id": row.id,
        "sig": row.sig,
        "mint": row.mint,
        "ticker": row.ticker,
        "side": row.side,
        "wallet": row.wallet,
        "amount": row.amount,
        "price_usdc": row.price_usdc,
        "slot": row.slot,
        "created_at": row.created_at.isoformat(),
    }
