"""Repository Protocol for the event processor's writes.

Unit tests inject a mock that conforms to this Protocol.
"""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_indexer.domain.models import DividendRef, FreeFloatChange


class IndexerRepositoryProtocol(Protocol):
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
    ) -> bool: ...

    async def increment_position(
        self, db: AsyncSession, wallet: str, mint: str, amount: int
    ) -> int: ...

    async def decrement_position(
        self, db: AsyncSession, wallet: str, mint: str, amount: int
    ) -> int | None: ...

    async def delete_empty_position(self, db: AsyncSession, wallet: str, mint: str) -> bool: ...

    async def adjust_free_float(
        self, db: AsyncSession, mint: str, delta: int, slot: int
    ) -> FreeFloatChange | None: ...

    async def touch_asset_slot(self, db: AsyncSession, mint: str, slot: int) -> None: ...

    async def find_asset_mint(self, db: AsyncSession, ref: str) -> str | None: ...

    async def insert_asset(self, db: AsyncSession, fields: dict[str, Any]) -> bool: ...

    async def update_asset_by_address(
        self, db: AsyncSession, address: str, price_usdc: int, free_float: int, slot: int
    ) -> bool: ...

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
    ) -> bool: ...

    async def get_dividend(self, db: AsyncSession, pda: str) -> DividendRef | None: ...

    async def claimed_total(self, db: AsyncSession, dividend_id: int) -> int: ...

    async def insert_claim(
        self,
        db: AsyncSession,
        dividend_id: int,
        wallet: str,
        amount: int,
        slot: int,
        created_at: datetime,
        pda: str | None = None,
    ) -> bool: ...

    async def close_dividend(
        self, db: AsyncSession, pda: str, closed_at: datetime
    ) -> bool: ...

    async def replay_position_shares(self, db: AsyncSession, wallet: str, mint: str) -> int: ...

    async def set_position(self, db: AsyncSession, wallet: str, mint: str, shares: int) -> None: ...


class DeadLetterRepositoryProtocol(Protocol):
    async def insert(
        self,
        db: AsyncSession,
        signature: str,
        slot: int,
        event_name: str,
        payload: dict[str, Any],
        error: str,
        attempts: int,
    ) -> int: ...
