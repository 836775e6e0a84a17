"""SolanaChainClient: concrete ChainClientProtocol over HTTP RPC + websocket."""

import asyncio
from collections.abc import AsyncIterator

from src.rwa_chain.domain.models import (
    LogNotification,
    ProgramAccountsSnapshot,
    TransactionInfo,
)
from src.rwa_chain.infrastructure.log_subscription import LogSubscriber
from src.rwa_chain.infrastructure.rpc_client import SolanaRpcClient


class SolanaChainClient:
    def __init__(self, rpc: SolanaRpcClient, subscriber: LogSubscriber) -> None:
        self._rpc = rpc
        self._subscriber = subscriber

    @classmethod
    def from_urls(
        cls,
        rpc_url: str,
        ws_url: str,
        max_retries: int = 5,
        timeout_sec: float = 12.0,
    ) -> "SolanaChainClient":
        return cls(
            SolanaRpcClient(rpc_url, max_retries=max_retries, timeout_sec=timeout_sec),
            LogSubscriber(ws_url),
        )

    @property
    def connected(self) -> bool:
        return self._subscriber.connected

    async def open(self) -> None:
        await self._rpc.open()

    async def close(self) -> None:
        await self._rpc.close()

    def subscribe_logs(
        self, program_id: str, stop_event: asyncio.Event
    ) -> AsyncIterator[LogNotification]:
        return self._subscriber.stream(program_id, stop_event)

    async def get_transaction(self, signature: str) -> TransactionInfo | None:
        return await self._rpc.get_transaction(signature)

    async def get_program_accounts(self, program_id: str) -> ProgramAccountsSnapshot:
        return await self._rpc.get_program_accounts(program_id)
