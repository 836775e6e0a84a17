"""AssetRepository: concrete implementation of AssetRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_assets.domain.models import Asset, UpsertOutcome
from src.rwa_common.enums import AssetSort
from src.rwa_indexer.domain.events import AssetAccount

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_ASSET_COLUMNS = """
    id, mint, address, ticker, issuer, usdc_mint, decimals,
    price_usdc, total_supply, free_float, last_slot, created_at, updated_at
"""

_GET_ASSET_SQL = text(f"""
    SELECT {_ASSET_COLUMNS}
    FROM assets
    WHERE mint = :mint
""")

_LIST_ASSETS_BASE = f"""
    SELECT {_ASSET_COLUMNS}
    FROM assets
    WHERE
        (CAST(:mint AS TEXT) IS NULL OR mint = CAST(:mint AS TEXT))
        AND (
            CAST(:q AS TEXT) IS NULL
            OR ticker ILIKE '%' || CAST(:q AS TEXT) || '%'
            OR mint ILIKE CAST(:q AS TEXT) || '%'
            OR issuer ILIKE CAST(:q AS TEXT) || '%'
        )
"""

_ORDER_BY = {
    AssetSort.CREATED: "created_at {dir}, id {dir}",
    AssetSort.NAME: "COALESCE(ticker, mint) {dir}, id {dir}",
    AssetSort.PRICE: "price_usdc {dir}, id {dir}",
}

# Fixed set of statements; ORDER BY cannot be a bind parameter.
_LIST_ASSETS_SQL = {
    (sort, descending): text(
        _LIST_ASSETS_BASE + " ORDER BY " + order.format(dir="DESC" if descending else "ASC")
    )
    for sort, order in _ORDER_BY.items()
    for descending in (False, True)
}

# Chain-authored columns only; ticker and created_at are never touched. The
# WHERE on DO UPDATE makes a re-sync of identical state a no-op, and an older
# snapshot than the stored slot a no-op.
_UPSERT_FROM_CHAIN_SQL = text("""
    INSERT INTO assets
        (mint, address, issuer, usdc_mint, decimals,
         price_usdc, total_supply, free_float, last_slot)
    VALUES
        (:mint, :address, :issuer, :usdc_mint, :decimals,
         :price_usdc, :total_supply,
         LEAST(GREATEST(:free_float, 0), :total_supply), :slot)
    ON CONFLICT (mint) DO UPDATE
        SET address      = EXCLUDED.address,
            issuer       = EXCLUDED.issuer,
            usdc_mint    = EXCLUDED.usdc_mint,
            decimals     = EXCLUDED.decimals,
            price_usdc   = EXCLUDED.price_usdc,
            total_supply = EXCLUDED.total_supply,
            free_float   = EXCLUDED.free_float,
            last_slot    = GREATEST(assets.last_slot, EXCLUDED.last_slot),
            updated_at   = NOW()
        WHERE assets.last_slot <= EXCLUDED.last_slot
          AND (assets.address, assets.issuer, assets.usdc_mint, assets.decimals,
               assets.price_usdc, assets.total_supply, assets.free_float)
              IS DISTINCT FROM
              (EXCLUDED.address, EXCLUDED.issuer, EXCLUDED.usdc_mint, EXCLUDED.decimals,
               EXCLUDED.price_usdc, EXCLUDED.total_supply, EXCLUDED.free_float)
    RETURNING (xmax = 0) AS inserted
""")

_UPDATE_PRICE_SQL = text(f"""
    UPDATE assets
    SET price_usdc = :price_usdc,
        updated_at = NOW()
    WHERE mint = :mint
    RETURNING {_ASSET_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_asset(row: object) -> Asset:
    return Asset(
        id=row.id,  # type: ignore[attr-defined]
        mint=row.mint,  # type: ignore[attr-defined]
        address=row.address,  # type: ignore[attr-defined]
        ticker=row.ticker,  # type: ignore[attr-defined]
        issuer=row.issuer,  # type: ignore[attr-defined]
        usdc_mint=row.usdc_mint,  # type: ignore[attr-defined]
        decimals=row.decimals,  # type: ignore[attr-defined]
        price_usdc=row.price_usdc,  # type: ignore[attr-defined]
        total_supply=row.total_supply,  # type: ignore[attr-defined]
        free_float=row.free_float,  # type: ignore[attr-defined]
        last_slot=row.last_slot,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class AssetRepository:
    async def list_assets(
        self,
        db: AsyncSession,
        mint: str | None,
        q: str | None,
        sort: str,
        descending: bool,
    ) -> list[Asset]:
        sql = _LIST_ASSETS_SQL[(AssetSort(sort), descending)]
        result = await db.execute(sql, {"mint": mint, "q": q})
        return [_row_to_asset(row) for row in result.fetchall()]

    async def get_asset_by_mint(self, db: AsyncSession, mint: str) -> Asset | None:
        result = await db.execute(_GET_ASSET_SQL, {"mint": mint})
        row = result.fetchone()
        return _row_to_asset(row) if row else None

    async def upsert_from_chain(
        self, db: AsyncSession, account: AssetAccount, slot: int
    ) -> UpsertOutcome:
        result = await db.execute(
            _UPSERT_FROM_CHAIN_SQL,
            {
                "mint": account.mint,
                "address": account.address,
                "issuer": account.issuer,
                "usdc_mint": account.usdc_mint,
                "decimals": account.decimals,
                "price_usdc": account.price_usdc,
                "total_supply": account.total_supply,
                "free_float": account.free_float,
                "slot": slot,
            },
        )
        row = result.fetchone()
        if row is None:
            return UpsertOutcome.UNCHANGED
        return UpsertOutcome.INSERTED if row.inserted else UpsertOutcome.UPDATED

    async def update_price(self, db: AsyncSession, mint: str, price_usdc: int) -> Asset | None:
        result = await db.execute(_UPDATE_PRICE_SQL, {"mint": mint, "price_usdc": price_usdc})
        row = result.fetchone()
        return _row_to_asset(row) if row else None
