"""IndexerRepository: concrete implementation of IndexerRepositoryProtocol.

Every write is a single PostgreSQL statement; natural keys from the chain
(signature, PDA, mint) carry idempotency via ON CONFLICT.

Transaction ownership: the CALLER (EventProcessor) commits or rolls back.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_indexer.domain.models import DividendRef, FreeFloatChange

# ---------------------------------------------------------------------------
# SQL: trades / positions
# ---------------------------------------------------------------------------

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (sig, mint, side, wallet, amount, price_usdc, slot, created_at)
    VALUES (:sig, :mint, :side, :wallet, :amount, :price_usdc, :slot, :created_at)
    ON CONFLICT (sig) DO NOTHING
    RETURNING id
""")

_INCREMENT_POSITION_SQL = text("""
    INSERT INTO positions (wallet, mint, shares)
    VALUES (:wallet, :mint, :amount)
    ON CONFLICT (wallet, mint) DO UPDATE
        SET shares = positions.shares + EXCLUDED.shares,
            updated_at = NOW()
    RETURNING shares
""")

_DECREMENT_POSITION_SQL = text("""
    UPDATE positions
    SET shares = shares - :amount,
        updated_at = NOW()
    WHERE wallet = :wallet AND mint = :mint
    RETURNING shares
""")

_DELETE_EMPTY_POSITION_SQL = text("""
    DELETE FROM positions
    WHERE wallet = :wallet AND mint = :mint AND shares <= 0
    RETURNING id
""")

_REPLAY_POSITION_SQL = text("""
    SELECT COALESCE(SUM(CASE WHEN side = 'buy' THEN amount ELSE -amount END), 0) AS shares
    FROM trades
    WHERE wallet = :wallet AND mint = :mint
""")

_SET_POSITION_SQL = text("""
    INSERT INTO positions (wallet, mint, shares)
    VALUES (:wallet, :mint, :shares)
    ON CONFLICT (wallet, mint) DO UPDATE
        SET shares = EXCLUDED.shares,
            updated_at = NOW()
""")

_DELETE_POSITION_SQL = text("""
    DELETE FROM positions WHERE wallet = :wallet AND mint = :mint
""")

# ---------------------------------------------------------------------------
# SQL: assets
# ---------------------------------------------------------------------------

_ADJUST_FREE_FLOAT_SQL = text("""
    WITH prev AS (
        SELECT mint, free_float FROM assets WHERE mint = :mint FOR UPDATE
    )
    UPDATE assets a
    SET free_float = LEAST(GREATEST(prev.free_float + :delta, 0), a.total_supply),
        last_slot = GREATEST(a.last_slot, :slot),
        updated_at = NOW()
    FROM prev
    WHERE a.mint = prev.mint
    RETURNING a.free_float, prev.free_float + :delta AS requested
""")

_TOUCH_ASSET_SLOT_SQL = text("""
    UPDATE assets
    SET last_slot = :slot, updated_at = NOW()
    WHERE mint = :mint AND last_slot < :slot
""")

_FIND_ASSET_MINT_SQL = text("""
    SELECT mint FROM assets
    WHERE address = :ref OR mint = :ref
    ORDER BY (address = :ref) DESC NULLS LAST
    LIMIT 1
""")

_INSERT_ASSET_SQL = text("""
    INSERT INTO assets
        (mint, address, ticker, issuer, usdc_mint, decimals,
         price_usdc, total_supply, free_float, last_slot)
    VALUES
        (:mint, :address, :ticker, :issuer, :usdc_mint, :decimals,
         :price_usdc, :total_supply,
         LEAST(GREATEST(:free_float, 0), :total_supply), :slot)
    ON CONFLICT (mint) DO NOTHING
    RETURNING id
""")

_UPDATE_ASSET_BY_ADDRESS_SQL = text("""
    UPDATE assets
    SET price_usdc = :price_usdc,
        free_float = LEAST(GREATEST(:free_float, 0), total_supply),
        last_slot = :slot,
        updated_at = NOW()
    WHERE address = :address AND last_slot <= :slot
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: dividends / claims
# ---------------------------------------------------------------------------

_INSERT_DIVIDEND_SQL = text("""
    INSERT INTO dividends
        (pda, mint, "index", total_amount, supply_circ_at_open, slot, created_at)
    VALUES
        (:pda, :mint, :index, :total_amount, :supply_circ_at_open, :slot, :created_at)
    ON CONFLICT (pda) DO NOTHING
    RETURNING id
""")

_GET_DIVIDEND_SQL = text("""
    SELECT id, pda, mint, total_amount, is_closed
    FROM dividends
    WHERE pda = :pda
""")

_CLAIMED_TOTAL_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) AS claimed FROM claims WHERE dividend_id = :dividend_id
""")

_INSERT_CLAIM_SQL = text("""
    INSERT INTO claims (dividend_id, wallet, pda, amount, slot, created_at)
    VALUES (:dividend_id, :wallet, :pda, :amount, :slot, :created_at)
    ON CONFLICT (dividend_id, wallet) DO UPDATE
        SET pda = COALESCE(claims.pda, EXCLUDED.pda)
    RETURNING (xmax = 0) AS inserted
""")

_CLOSE_DIVIDEND_SQL = text("""
    UPDATE dividends
    SET is_closed = TRUE,
        closed_at = :closed_at
    WHERE pda = :pda AND is_closed = FALSE
    RETURNING id
""")


class IndexerRepository:
    """Concrete repository: each method is one statement."""

    async def insert_trade(
        self,
        db: AsyncSession,
        sig: str,
        mint: str,
        side: str,
        wallet: str,
        amount: int,
        price_usdc: int,
        slot: int,
        created_at: datetime,
    ) -> bool:
        result = await db.execute(
            _INSERT_TRADE_SQL,
            {
                "sig": sig,
                "mint": mint,
                "side": side,
                "wallet": wallet,
                "amount": amount,
                "price_usdc": price_usdc,
                "slot": slot,
                "created_at": created_at,
            },
        )
        return result.fetchone() is not None

    async def increment_position(
        self, db: AsyncSession, wallet: str, mint: str, amount: int
    ) -> int:
        result = await db.execute(
            _INCREMENT_POSITION_SQL, {"wallet": wallet, "mint": mint, "amount": amount}
        )
        return int(result.scalar_one())

    async def decrement_position(
        self, db: AsyncSession, wallet: str, mint: str, amount: int
    ) -> int | None:
        result = await db.execute(
            _DECREMENT_POSITION_SQL, {"wallet": wallet, "mint": mint, "amount": amount}
        )
        row = result.fetchone()
        return int(row.shares) if row else None

    async def delete_empty_position(self, db: AsyncSession, wallet: str, mint: str) -> bool:
        result = await db.execute(_DELETE_EMPTY_POSITION_SQL, {"wallet": wallet, "mint": mint})
        return result.fetchone() is not None

    async def adjust_free_float(
        self, db: AsyncSession, mint: str, delta: int, slot: int
    ) -> FreeFloatChange | None:
        result = await db.execute(
            _ADJUST_FREE_FLOAT_SQL, {"mint": mint, "delta": delta, "slot": slot}
        )
        row = result.fetchone()
        if row is None:
            return None
        return FreeFloatChange(requested=int(row.requested), free_float=int(row.free_float))

    async def touch_asset_slot(self, db: AsyncSession, mint: str, slot: int) -> None:
        await db.execute(_TOUCH_ASSET_SLOT_SQL, {"mint": mint, "slot": slot})

    async def find_asset_mint(self, db: AsyncSession, ref: str) -> str | None:
        result = await db.execute(_FIND_ASSET_MINT_SQL, {"ref": ref})
        row = result.fetchone()
        return row.mint if row else None

    async def insert_asset(self, db: AsyncSession, fields: dict[str, Any]) -> bool:
        result = await db.execute(_INSERT_ASSET_SQL, fields)
        return result.fetchone() is not None

    async def update_asset_by_address(
        self, db: AsyncSession, address: str, price_usdc: int, free_float: int, slot: int
    ) -> bool:
        result = await db.execute(
            _UPDATE_ASSET_BY_ADDRESS_SQL,
            {"address": address, "price_usdc": price_usdc, "free_float": free_float, "slot": slot},
        )
        return result.fetchone() is not None

    async def insert_dividend(
        self,
        db: AsyncSession,
        pda: str,
        mint: str,
        index: int,
        total_amount: int,
        supply_circ_at_open: int,
        slot: int,
        created_at: datetime,
    ) -> bool:
        result = await db.execute(
            _INSERT_DIVIDEND_SQL,
            {
                "pda": pda,
                "mint": mint,
                "index": index,
                "total_amount": total_amount,
                "supply_circ_at_open": supply_circ_at_open,
                "slot": slot,
                "created_at": created_at,
            },
        )
        return result.fetchone() is not None

    async def get_dividend(self, db: AsyncSession, pda: str) -> DividendRef | None:
        result = await db.execute(_GET_DIVIDEND_SQL, {"pda": pda})
        row = result.fetchone()
        if row is None:
            return None
        return DividendRef(
            id=row.id,
            pda=row.pda,
            mint=row.mint,
            total_amount=row.total_amount,
            is_closed=row.is_closed,
        )

    async def claimed_total(self, db: AsyncSession, dividend_id: int) -> int:
        result = await db.execute(_CLAIMED_TOTAL_SQL, {"dividend_id": dividend_id})
        return int(result.scalar_one())

    async def insert_claim(
        self,
        db: AsyncSession,
        dividend_id: int,
        wallet: str,
        amount: int,
        slot: int,
        created_at: datetime,
        pda: str | None = None,
    ) -> bool:
        """Insert the claim keyed by (dividend, holder); a redelivery only fills a missing PDA."""
        result = await db.execute(
            _INSERT_CLAIM_SQL,
            {
                "pda": pda,
                "dividend_id": dividend_id,
                "wallet": wallet,
                "amount": amount,
                "slot": slot,
                "created_at": created_at,
            },
        )
        return bool(result.scalar_one())

    async def close_dividend(self, db: AsyncSession, pda: str, closed_at: datetime) -> bool:
        result = await db.execute(_CLOSE_DIVIDEND_SQL, {"pda": pda, "closed_at": closed_at})
        return result.fetchone() is not None

    async def replay_position_shares(self, db: AsyncSession, wallet: str, mint: str) -> int:
        result = await db.execute(_REPLAY_POSITION_SQL, {"wallet": wallet, "mint": mint})
        return int(result.scalar_one())

    async def set_position(self, db: AsyncSession, wallet: str, mint: str, shares: int) -> None:
        if shares > 0:
            await db.execute(_SET_POSITION_SQL, {"wallet": wallet, "mint": mint, "shares": shares})
        else:
            await db.execute(_DELETE_POSITION_SQL, {"wallet": wallet, "mint": mint})
