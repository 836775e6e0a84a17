"""IndexerRuntime: builds and owns the long-running indexer components.

Used by the API lifespan and by the CLI `run` command so both start and stop
the chain client, listener and periodic sync the same way.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.rwa_assets.application.sync_service import AssetSyncService
from src.rwa_chain.infrastructure.client import SolanaChainClient
from src.rwa_common.errors import AppError
from src.rwa_indexer.application.listener import IndexerListener
from src.rwa_indexer.application.processor import EventProcessor
from src.rwa_indexer.domain.decoder import EventDecoder

logger = logging.getLogger(__name__)


@dataclass
class IndexerRuntime:
    settings: Settings
    chain: SolanaChainClient
    decoder: EventDecoder
    processor: EventProcessor
    sync_service: AssetSyncService
    listener: IndexerListener
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    _sync_task: asyncio.Task[None] | None = None

    @classmethod
    def build(
        cls, settings: Settings, session_factory: async_sessionmaker[AsyncSession]
    ) -> "IndexerRuntime":
        program_ids = [settings.RWA_MARKET_PROGRAM_ID, settings.RWA_REGISTRY_PROGRAM_ID]
        chain = SolanaChainClient.from_urls(
            settings.SOLANA_RPC_URL,
            settings.SOLANA_WS_URL,
            max_retries=settings.RPC_MAX_RETRIES,
            timeout_sec=settings.RPC_TIMEOUT_SECONDS,
        )
        decoder = EventDecoder(program_ids=program_ids)
        processor = EventProcessor(session_factory)
        sync_service = AssetSyncService(
            chain, session_factory, settings.RWA_REGISTRY_PROGRAM_ID, decoder=decoder
        )
        listener = IndexerListener(
            chain,
            decoder,
            processor,
            program_ids,
            session_factory,
            workers=settings.INDEXER_WORKERS,
            max_attempts=settings.INDEXER_MAX_ATTEMPTS,
        )
        return cls(
            settings=settings,
            chain=chain,
            decoder=decoder,
            processor=processor,
            sync_service=sync_service,
            listener=listener,
        )

    async def start(self, run_listener: bool = True) -> None:
        """Open RPC, run one sync, then start streaming and the sync timer."""
        await self.chain.open()
        try:
            await self.sync_service.sync_assets()
        except AppError as exc:
            # The periodic task retries; streaming does not depend on it.
            logger.error("Initial asset sync failed: %s", exc.message)
        if run_listener:
            await self.listener.start()
        self._sync_task = asyncio.create_task(
            self.sync_service.run_periodic(
                self.settings.ASSET_SYNC_INTERVAL_SECONDS, self.stop_event
            ),
            name="asset-sync",
        )

    async def stop(self) -> None:
        self.stop_event.set()
        await self.listener.stop()
        if self._sync_task is not None:
            self._sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sync_task
            self._sync_task = None
        await self.chain.close()
