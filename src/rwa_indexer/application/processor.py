"""EventProcessor: applies one decoded program event to the store.

One DB transaction per event: commit on success, rollback + re-raise on
failure. Re-applying an event is a no-op because every insert is keyed by a
chain identity (signature or PDA).
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rwa_common.datetime_utils import from_block_time
from src.rwa_common.enums import TradeSide
from src.rwa_indexer.domain.borsh import pubkey_bytes
from src.rwa_indexer.domain.events import (
    AssetCreated,
    AssetUpdated,
    DividendClaimed,
    DividendClosed,
    DividendOpened,
    ProgramEvent,
    SharesBought,
    SharesSold,
)
from src.rwa_indexer.domain.repository import IndexerRepositoryProtocol
from src.rwa_indexer.infrastructure.persistence import IndexerRepository

logger = logging.getLogger(__name__)


def dividend_index(pda: str) -> int:
    """First byte of the dividend PDA, as the market program numbers dividends."""
    return pubkey_bytes(pda)[0]


class EventProcessor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repo: IndexerRepositoryProtocol | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repo: IndexerRepositoryProtocol = repo or IndexerRepository()

    async def process(
        self,
        event: ProgramEvent,
        signature: str,
        slot: int,
        block_time: int | None = None,
    ) -> None:
        at = from_block_time(block_time)
        async with self._session_factory() as db:
            try:
                await self._apply(db, event, signature, slot, at)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def rebuild_position(self, wallet: str, mint: str) -> int:
        """Recompute positions.shares for (wallet, mint) from the trades table."""
        async with self._session_factory() as db:
            try:
                shares = await self._repo.replay_position_shares(db, wallet, mint)
                await self._repo.set_position(db, wallet, mint, shares)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Position rebuilt: wallet=%s mint=%s shares=%d", wallet, mint, shares)
        return shares

    # ---- dispatch ----

    async def _apply(
        self,
        db: AsyncSession,
        event: ProgramEvent,
        signature: str,
        slot: int,
        at: datetime,
    ) -> None:
        if isinstance(event, SharesBought):
            await self._on_shares_bought(db, event, signature, slot, at)
        elif isinstance(event, SharesSold):
            await self._on_shares_sold(db, event, signature, slot, at)
        elif isinstance(event, DividendOpened):
            await self._on_dividend_opened(db, event, slot, at)
        elif isinstance(event, DividendClaimed):
            await self._on_dividend_claimed(db, event, slot, at)
        elif isinstance(event, DividendClosed):
            await self._on_dividend_closed(db, event, slot, at)
        elif isinstance(event, AssetCreated):
            await self._on_asset_created(db, event, slot)
        elif isinstance(event, AssetUpdated):
            await self._on_asset_updated(db, event, slot)
        else:
            raise TypeError(f"Unhandled event type: {type(event).__name__}")

    # ---- trades ----

    async def _on_shares_bought(
        self, db: AsyncSession, event: SharesBought, signature: str, slot: int, at: datetime
    ) -> None:
        inserted = await self._repo.insert_trade(
            db,
            sig=signature,
            mint=event.mint,
            side=TradeSide.BUY.value,
            wallet=event.buyer,
            amount=event.amount,
            price_usdc=event.total_paid,
            slot=slot,
            created_at=at,
        )
        if not inserted:
            logger.info("SharesBought idempotency hit: sig=%s", signature)
            return
        shares = await self._repo.increment_position(db, event.buyer, event.mint, event.amount)
        await self._adjust_free_float(db, event.mint, -event.amount, slot)
        logger.info(
            "SharesBought applied: sig=%s buyer=%s mint=%s amount=%d position=%d",
            signature,
            event.buyer,
            event.mint,
            event.amount,
            shares,
        )

    async def _on_shares_sold(
        self, db: AsyncSession, event: SharesSold, signature: str, slot: int, at: datetime
    ) -> None:
        inserted = await self._repo.insert_trade(
            db,
            sig=signature,
            mint=event.mint,
            side=TradeSide.SELL.value,
            wallet=event.seller,
            amount=event.amount,
            price_usdc=event.total_received,
            slot=slot,
            created_at=at,
        )
        if not inserted:
            logger.info("SharesSold idempotency hit: sig=%s", signature)
            return
        shares = await self._repo.decrement_position(db, event.seller, event.mint, event.amount)
        if shares is None:
            logger.warning(
                "SharesSold without a position: sig=%s seller=%s mint=%s",
                signature,
                event.seller,
                event.mint,
            )
        elif shares <= 0:
            await self._repo.delete_empty_position(db, event.seller, event.mint)
        await self._adjust_free_float(db, event.mint, event.amount, slot)
        logger.info(
            "SharesSold applied: sig=%s seller=%s mint=%s amount=%d",
            signature,
            event.seller,
            event.mint,
            event.amount,
        )

    async def _adjust_free_float(
        self, db: AsyncSession, mint: str, delta: int, slot: int
    ) -> None:
        change = await self._repo.adjust_free_float(db, mint, delta, slot)
        if change is None:
            logger.warning("Trade for unknown asset: mint=%s (free float not updated)", mint)
        elif change.clamped:
            logger.warning(
                "free_float clamped: mint=%s requested=%d stored=%d",
                mint,
                change.requested,
                change.free_float,
            )

    # ---- dividends ----

    async def _on_dividend_opened(
        self, db: AsyncSession, event: DividendOpened, slot: int, at: datetime
    ) -> None:
        mint = await self._repo.find_asset_mint(db, event.asset)
        if mint is None:
            logger.warning(
                "DividendOpened for unknown asset: dividend=%s asset=%s", event.dividend, event.asset
            )
            return
        inserted = await self._repo.insert_dividend(
            db,
            pda=event.dividend,
            mint=mint,
            index=dividend_index(event.dividend),
            total_amount=event.total_amount,
            supply_circ_at_open=event.supply_circ_at_open,
            slot=slot,
            created_at=at,
        )
        if not inserted:
            logger.info("DividendOpened idempotency hit: pda=%s", event.dividend)
            return
        await self._repo.touch_asset_slot(db, mint, slot)
        logger.info(
            "DividendOpened applied: pda=%s mint=%s total=%d", event.dividend, mint, event.total_amount
        )

    async def _on_dividend_claimed(
        self, db: AsyncSession, event: DividendClaimed, slot: int, at: datetime
    ) -> None:
        dividend = await self._repo.get_dividend(db, event.dividend)
        if dividend is None:
            logger.error(
                "DividendClaimed before its dividend is indexed: dividend=%s holder=%s",
                event.dividend,
                event.holder,
            )
            return
        # A holder claims a dividend once; the pair is the key whether or not the PDA is known.
        inserted = await self._repo.insert_claim(
            db,
            dividend_id=dividend.id,
            wallet=event.holder,
            amount=event.amount,
            slot=slot,
            created_at=at,
            pda=event.claim,
        )
        if not inserted:
            logger.info(
                "DividendClaimed idempotency hit: dividend=%s holder=%s", event.dividend, event.holder
            )
            return
        claimed = await self._repo.claimed_total(db, dividend.id)
        if claimed > dividend.total_amount:
            logger.warning(
                "Claims exceed dividend total: pda=%s claimed=%d total=%d",
                dividend.pda,
                claimed,
                dividend.total_amount,
            )
        await self._repo.touch_asset_slot(db, dividend.mint, slot)
        logger.info(
            "DividendClaimed applied: dividend=%s holder=%s amount=%d",
            event.dividend,
            event.holder,
            event.amount,
        )

    async def _on_dividend_closed(
        self, db: AsyncSession, event: DividendClosed, slot: int, at: datetime
    ) -> None:
        dividend = await self._repo.get_dividend(db, event.dividend)
        if dividend is None:
            logger.warning("DividendClosed for unknown dividend: pda=%s", event.dividend)
            return
        if not await self._repo.close_dividend(db, event.dividend, at):
            logger.info("DividendClosed idempotency hit: pda=%s", event.dividend)
            return
        await self._repo.touch_asset_slot(db, dividend.mint, slot)
        logger.info(
            "DividendClosed applied: pda=%s remaining=%s", event.dividend, event.remaining_amount
        )

    # ---- registry ----

    async def _on_asset_created(self, db: AsyncSession, event: AssetCreated, slot: int) -> None:
        inserted = await self._repo.insert_asset(
            db,
            {
                "mint": event.asset_mint,
                "address": event.asset,
                "ticker": None,
                "issuer": event.issuer,
                "usdc_mint": event.usdc_mint,
                "decimals": event.decimals,
                "price_usdc": event.price_usdc,
                "total_supply": event.total_supply,
                "free_float": event.free_float,
                "slot": slot,
            },
        )
        if not inserted:
            logger.info("AssetCreated idempotency hit: mint=%s", event.asset_mint)
            return
        logger.info("AssetCreated applied: mint=%s address=%s", event.asset_mint, event.asset)

    async def _on_asset_updated(self, db: AsyncSession, event: AssetUpdated, slot: int) -> None:
        updated = await self._repo.update_asset_by_address(
            db, event.asset, event.price_usdc, event.free_float, slot
        )
        if not updated:
            logger.warning(
                "AssetUpdated not applied (unknown asset or stale slot): address=%s slot=%d",
                event.asset,
                slot,
            )
            return
        logger.info(
            "AssetUpdated applied: address=%s price=%d free_float=%d",
            event.asset,
            event.price_usdc,
            event.free_float,
        )
