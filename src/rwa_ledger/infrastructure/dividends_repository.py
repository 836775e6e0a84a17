"""Read-only dividend and claim queries."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_LIST_DIVIDENDS_SQL = text("""
    SELECT d.id, d.pda, d.mint, a.ticker, d."index", d.total_amount,
           d.supply_circ_at_open, d.is_closed, d.closed_at, d.slot, d.created_at,
           COALESCE(c.claimed, 0) AS claimed_amount,
           COALESCE(c.claims, 0) AS claim_count
    FROM dividends d
    LEFT JOIN assets a ON a.mint = d.mint
    LEFT JOIN (
        SELECT dividend_id, SUM(amount) AS claimed, COUNT(*) AS claims
        FROM claims
        GROUP BY dividend_id
    ) c ON c.dividend_id = d.id
    WHERE (CAST(:mint AS TEXT) IS NULL OR d.mint = CAST(:mint AS TEXT))
    ORDER BY d.created_at DESC, d.id DESC
""")

_LIST_CLAIMS_SQL = text("""
    SELECT c.id, c.pda, d.pda AS dividend, d.mint, c.wallet, c.amount, c.slot, c.created_at
    FROM claims c
    JOIN dividends d ON d.id = c.dividend_id
    WHERE (CAST(:wallet AS TEXT) IS NULL OR c.wallet = CAST(:wallet AS TEXT))
      AND (CAST(:dividend AS TEXT) IS NULL OR d.pda = CAST(:dividend AS TEXT))
    ORDER BY c.created_at DESC, c.id DESC
""")

_DIVIDEND_EXISTS_SQL = text("""
    SELECT 1 FROM dividends WHERE pda = :pda
""")


class DividendsRepository:
    async def list_dividends(self, db: AsyncSession, mint: str | None) -> list[dict[str, Any]]:
        rows = (await db.execute(_LIST_DIVIDENDS_SQL, {"mint": mint})).fetchall()
        return [
            {
                "id": r.id,
                "pda": r.pda,
                "mint": r.mint,
                "ticker": r.ticker,
                "index": r.index,
                "total_amount": r.total_amount,
                "supply_circ_at_open": r.supply_circ_at_open,
                "claimed_amount": int(r.claimed_amount),
                "claim_count": int(r.claim_count),
                "is_closed": r.is_closed,
                "closed_at": r.closed_at.isoformat() if r.closed_at else None,
                "slot": r.slot,
                "created_at": r.created_at.isoformat(),
            }
            for r in rows
        ]

    async def dividend_exists(self, db: AsyncSession, pda: str) -> bool:
        return (await db.execute(_DIVIDEND_EXISTS_SQL, {"pda": pda})).fetchone() is not None

    async def list_claims(
        self, db: AsyncSession, wallet: str | None, dividend: str | None
    ) -> list[dict[str, Any]]:
        rows = (
            await db.execute(_LIST_CLAIMS_SQL, {"wallet": wallet, "dividend": dividend})
        ).fetchall()
        return [
            {
                "id": r.id,
                "pda": r.pda,
                "dividend": r.dividend,
                "mint": r.mint,
                "wallet": r.wallet,
                "amount": r.amount,
                "slot": r.slot,
                "created_at": r.created_at.isoformat(),
            }
            for r in rows
        ]
