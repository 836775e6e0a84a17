"""Read-only repository Protocol for P&L aggregation."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_pnl.domain.models import OpenPosition, TradeRecord


class PnLRepositoryProtocol(Protocol):
    async def get_open_position(
        self, db: AsyncSession, wallet: str, mint: str
    ) -> OpenPosition | None: ...

    async def list_open_positions(self, db: AsyncSession, wallet: str) -> list[OpenPosition]: ...

    async def list_trades(
        self,
        db: AsyncSession,
        wallet: str | None = None,
        mint: str | None = None,
        since: datetime | None = None,
    ) -> list[TradeRecord]: ...

    async def get_prices(self, db: AsyncSession, mints: list[str]) -> dict[str, int]: ...

    async def asset_exists(self, db: AsyncSession, mint: str) -> bool: ...
