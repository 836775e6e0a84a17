"""AssetSyncService: reconciles registry `Asset` accounts into `assets`.

The chain is authoritative for chain-authored columns. One account failing
(to decode or to persist) is logged and counted; the batch always finishes.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rwa_assets.domain.models import Asset, SyncReport
from src.rwa_assets.domain.repository import AssetRepositoryProtocol
from src.rwa_assets.infrastructure.persistence import AssetRepository
from src.rwa_chain.domain.client import ChainClientProtocol
from src.rwa_chain.domain.models import ProgramAccount
from src.rwa_common.errors import AssetNotFoundError, AssetSyncError, ChainRpcError, InvalidQueryError
from src.rwa_common.micro_units import validate_micro_amount
from src.rwa_indexer.domain.decoder import EventDecoder

logger = logging.getLogger(__name__)


class AssetSyncService:
    def __init__(
        self,
        chain_client: ChainClientProtocol,
        session_factory: async_sessionmaker[AsyncSession],
        registry_program_id: str,
        decoder: EventDecoder | None = None,
        repo: AssetRepositoryProtocol | None = None,
    ) -> None:
        self._chain = chain_client
        self._session_factory = session_factory
        self._registry_program_id = registry_program_id
        self._decoder = decoder or EventDecoder()
        self._repo: AssetRepositoryProtocol = repo or AssetRepository()
        self._lock = asyncio.Lock()

    async def sync_assets(self) -> SyncReport:
        """Fetch every registry account and upsert the decodable ones.

        Concurrent calls (timer + manual trigger) run one after the other.
        Raises AssetSyncError only when the account list cannot be fetched.
        """
        async with self._lock:
            try:
                snapshot = await self._chain.get_program_accounts(self._registry_program_id)
            except ChainRpcError as exc:
                raise AssetSyncError(exc.message) from exc

            report = SyncReport(slot=snapshot.slot, fetched=len(snapshot.accounts))
            for account in snapshot.accounts:
                await self._sync_account(account, snapshot.slot, report)

        logger.info(
            "Asset sync finished: slot=%d fetched=%d inserted=%d updated=%d "
            "unchanged=%d skipped=%d failed=%d",
            report.slot,
            report.fetched,
            report.inserted,
            report.updated,
            report.unchanged,
            report.skipped,
            report.failed,
        )
        return report

    async def _sync_account(self, account: ProgramAccount, slot: int, report: SyncReport) -> None:
        decoded = self._decoder.decode_asset_account(account.address, account.data)
        if decoded is None:
            logger.debug("Registry account %s is not an Asset account", account.address)
            report.skipped += 1
            return
        async with self._session_factory() as db:
            try:
                outcome = await self._repo.upsert_from_chain(db, decoded, slot)
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("Asset upsert failed: address=%s mint=%s", account.address, decoded.mint)
                report.failed += 1
                report.failed_addresses.append(account.address)
                return
        report.record(outcome)
        logger.debug("Asset %s %s at slot %d", decoded.mint, outcome.value, slot)

    async def update_asset_price(self, mint: str, price_usdc: int) -> Asset:
        """Set an asset's price from an external source (micro-USDC per share)."""
        try:
            validate_micro_amount(price_usdc)
        except ValueError as exc:
            raise InvalidQueryError(str(exc)) from exc
        async with self._session_factory() as db:
            try:
                asset = await self._repo.update_price(db, mint, price_usdc)
                if asset is None:
                    raise AssetNotFoundError(mint)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Asset price updated: mint=%s price_usdc=%d", mint, price_usdc)
        return asset

    async def run_periodic(self, interval: float, stop_event: asyncio.Event) -> None:
        """Re-sync every `interval` seconds until `stop_event` is set."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break
            try:
                await self.sync_assets()
            except Exception:
                logger.exception("Periodic asset sync failed; retrying in %.0fs", interval)
