"""IndexerListener: subscription loop feeding the EventProcessor.

One subscriber task per program id pushes confirmed notifications onto a
bounded queue; worker tasks fetch each transaction, decode it and apply its
events in log order. Events touching the same mint (or dividend) are
serialized through per-key locks. An event that keeps failing is written to
the dead-letter table; nothing here ends the loop.
"""

import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rwa_chain.domain.client import ChainClientProtocol
from src.rwa_chain.domain.models import LogNotification
from src.rwa_common.errors import ChainRpcError
from src.rwa_indexer.application.processor import EventProcessor
from src.rwa_indexer.domain.decoder import EventDecoder
from src.rwa_indexer.domain.events import ProgramEvent, event_payload, serialization_key
from src.rwa_indexer.domain.repository import DeadLetterRepositoryProtocol
from src.rwa_indexer.infrastructure.dead_letter import DeadLetterRepository

logger = logging.getLogger(__name__)


class IndexerListener:
    def __init__(
        self,
        chain_client: ChainClientProtocol,
        decoder: EventDecoder,
        processor: EventProcessor,
        program_ids: Iterable[str],
        session_factory: async_sessionmaker[AsyncSession],
        workers: int = 4,
        max_attempts: int = 3,
        retry_backoff: float = 0.5,
        queue_size: int = 10000,
        dead_letters: DeadLetterRepositoryProtocol | None = None,
    ) -> None:
        self._chain = chain_client
        self._decoder = decoder
        self._processor = processor
        self._program_ids = list(program_ids)
        self._session_factory = session_factory
        self._workers = max(1, workers)
        self._max_attempts = max(1, max_attempts)
        self._retry_backoff = retry_backoff
        self._dead_letters: DeadLetterRepositoryProtocol = dead_letters or DeadLetterRepository()

        self.queue: asyncio.Queue[LogNotification] = asyncio.Queue(maxsize=queue_size)
        self.pending: set[str] = set()
        self.stats: dict[str, int] = defaultdict(int)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._stop = asyncio.Event()
        self._subscriber_tasks: list[asyncio.Task[None]] = []
        self._worker_tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._subscriber_tasks) and not self._stop.is_set()

    async def start(self) -> None:
        if self._subscriber_tasks:
            return
        self._stop.clear()
        self._worker_tasks = [
            asyncio.create_task(self._worker_loop(), name=f"indexer-worker-{n}")
            for n in range(self._workers)
        ]
        self._subscriber_tasks = [
            asyncio.create_task(self._subscribe_loop(pid), name=f"indexer-sub-{pid[:8]}")
            for pid in self._program_ids
        ]
        logger.info(
            "Indexer listener started: programs=%s workers=%d",
            self._program_ids,
            self._workers,
        )

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Stop subscribing, let workers drain the queue, then cancel them."""
        self._stop.set()
        if self._subscriber_tasks:
            _, still_running = await asyncio.wait(self._subscriber_tasks, timeout=drain_timeout)
            for task in still_running:
                task.cancel()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self.queue.join(), timeout=drain_timeout)
        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._subscriber_tasks, *self._worker_tasks, return_exceptions=True)
        self._subscriber_tasks = []
        self._worker_tasks = []
        logger.info("Indexer listener stopped: %s", dict(self.stats))

    # ---- producer ----

    async def _subscribe_loop(self, program_id: str) -> None:
        while not self._stop.is_set():
            try:
                async for notification in self._chain.subscribe_logs(program_id, self._stop):
                    await self.enqueue(notification)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Subscription loop for %s crashed; restarting", program_id)
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), timeout=self._retry_backoff)

    async def enqueue(self, notification: LogNotification) -> None:
        if notification.failed:
            self.stats["skipped_failed_txs"] += 1
            return
        # A transaction mentioning both programs arrives on both subscriptions.
        if notification.signature in self.pending:
            return
        self.pending.add(notification.signature)
        await self.queue.put(notification)
        self.stats["enqueued_txs"] += 1

    # ---- consumers ----

    async def _worker_loop(self) -> None:
        while True:
            notification = await self.queue.get()
            try:
                await self.handle_notification(notification)
            except Exception:
                logger.exception("Unhandled error for tx %s", notification.signature)
            finally:
                self.pending.discard(notification.signature)
                self.queue.task_done()

    async def handle_notification(self, notification: LogNotification) -> None:
        """Fetch, decode and apply one transaction."""
        signature = notification.signature
        tx = None
        try:
            tx = await self._chain.get_transaction(signature)
        except ChainRpcError as exc:
            logger.warning("getTransaction %s failed, decoding from notification: %s", signature, exc)
        if tx is None:
            self.stats["tx_fetch_misses"] += 1

        logs = tx.logs if tx is not None and tx.logs else notification.logs
        account_keys = tx.account_keys if tx is not None else None
        slot = tx.slot if tx is not None and tx.slot else notification.slot
        block_time = tx.block_time if tx is not None else None

        events = self._decoder.decode_logs(logs, account_keys)
        if not events:
            logger.debug("No indexable events in tx %s", signature)
            return
        for event in events:
            await self.apply_with_retry(event, signature, slot, block_time)
        self.stats["processed_txs"] += 1

    async def apply_with_retry(
        self,
        event: ProgramEvent,
        signature: str,
        slot: int,
        block_time: int | None,
    ) -> bool:
        lock = self._locks[serialization_key(event)]
        delay = self._retry_backoff
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with lock:
                    await self._processor.process(event, signature, slot, block_time)
                self.stats["applied_events"] += 1
                return True
            except Exception as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "%s from tx %s failed after %d attempts: %s",
                        event.name.value,
                        signature,
                        attempt,
                        exc,
                    )
                    await self._write_dead_letter(event, signature, slot, exc, attempt)
                    return False
                logger.warning(
                    "%s from tx %s attempt %d/%d failed: %s",
                    event.name.value,
                    signature,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                await asyncio.sleep(delay)
                delay *= 2
        return False

    async def _write_dead_letter(
        self,
        event: ProgramEvent,
        signature: str,
        slot: int,
        exc: Exception,
        attempts: int,
    ) -> None:
        self.stats["dead_letters"] += 1
        async with self._session_factory() as db:
            try:
                await self._dead_letters.insert(
                    db,
                    signature=signature,
                    slot=slot,
                    event_name=event.name.value,
                    payload=event_payload(event),
                    error=f"{type(exc).__name__}: {exc}",
                    attempts=attempts,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("Dead-letter write failed for tx %s", signature)
