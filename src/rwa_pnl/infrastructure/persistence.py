"""PnLRepository: SELECT-only access to positions, trades and prices.

Sessions come from get_readonly_db_session (SET TRANSACTION READ ONLY).
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_pnl.domain.models import OpenPosition, TradeRecord

_GET_POSITION_SQL = text("""
    SELECT p.mint, p.shares, COALESCE(a.price_usdc, 0) AS price_usdc, a.ticker
    FROM positions p
    LEFT JOIN assets a ON a.mint = p.mint
    WHERE p.wallet = :wallet AND p.mint = :mint AND p.shares > 0
""")

_LIST_POSITIONS_SQL = text("""
    SELECT p.mint, p.shares, COALESCE(a.price_usdc, 0) AS price_usdc, a.ticker
    FROM positions p
    LEFT JOIN assets a ON a.mint = p.mint
    WHERE p.wallet = :wallet AND p.shares > 0
    ORDER BY p.mint
""")

_LIST_TRADES_SQL = text("""
    SELECT mint, side, amount, price_usdc, created_at
    FROM trades
    WHERE (CAST(:wallet AS TEXT) IS NULL OR wallet = CAST(:wallet AS TEXT))
      AND (CAST(:mint AS TEXT) IS NULL OR mint = CAST(:mint AS TEXT))
      AND (CAST(:since AS TIMESTAMPTZ) IS NULL OR created_at >= CAST(:since AS TIMESTAMPTZ))
    ORDER BY created_at ASC, id ASC
""")

_GET_PRICES_SQL = text("""
    SELECT mint, price_usdc FROM assets WHERE mint = ANY(:mints)
""")

_ASSET_EXISTS_SQL = text("""
    SELECT 1 FROM assets WHERE mint = :mint
""")


def _row_to_position(row: object) -> OpenPosition:
    return OpenPosition(
        mint=row.mint,  # type: ignore[attr-defined]
        shares=int(row.shares),  # type: ignore[attr-defined]
        price_usdc=int(row.price_usdc),  # type: ignore[attr-defined]
        ticker=row.ticker,  # type: ignore[attr-defined]
    )


def _row_to_trade(row: object) -> TradeRecord:
    return TradeRecord(
        mint=row.mint,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        amount=int(row.amount),  # type: ignore[attr-defined]
        price_usdc=int(row.price_usdc),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class PnLRepository:
    async def get_open_position(
        self, db: AsyncSession, wallet: str, mint: str
    ) -> OpenPosition | None:
        row = (await db.execute(_GET_POSITION_SQL, {"wallet": wallet, "mint": mint})).fetchone()
        return _row_to_position(row) if row else None

    async def list_open_positions(self, db: AsyncSession, wallet: str) -> list[OpenPosition]:
        rows = (await db.execute(_LIST_POSITIONS_SQL, {"wallet": wallet})).fetchall()
        return [_row_to_position(r) for r in rows]

    async def list_trades(
        self,
        db: AsyncSession,
        wallet: str | None = None,
        mint: str | None = None,
        since: datetime | None = None,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(_LIST_TRADES_SQL, {"wallet": wallet, "mint": mint, "since": since})
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def get_prices(self, db: AsyncSession, mints: list[str]) -> dict[str, int]:
        if not mints:
            return {}
        rows = (await db.execute(_GET_PRICES_SQL, {"mints": mints})).fetchall()
        return {r.mint: int(r.price_usdc) for r in rows}

    async def asset_exists(self, db: AsyncSession, mint: str) -> bool:
        return (await db.execute(_ASSET_EXISTS_SQL, {"mint": mint})).fetchone() is not None
