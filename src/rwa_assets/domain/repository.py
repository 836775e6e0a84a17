"""Repository Protocol for assets."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_assets.domain.models import Asset, UpsertOutcome
from src.rwa_indexer.domain.events import AssetAccount


class AssetRepositoryProtocol(Protocol):
    async def list_assets(
        self,
        db: AsyncSession,
        mint: str | None,
        q: str | None,
        sort: str,
        descending: bool,
    ) -> list[Asset]: ...

    async def get_asset_by_mint(self, db: AsyncSession, mint: str) -> Asset | None: ...

    async def upsert_from_chain(
        self, db: AsyncSession, account: AssetAccount, slot: int
    ) -> UpsertOutcome: ...

    async def update_price(self, db: AsyncSession, mint: str, price_usdc: int) -> Asset | None: ...
