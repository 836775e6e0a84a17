"""Chain client Protocol: dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real Solana implementation.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

from src.rwa_chain.domain.models import (
    LogNotification,
    ProgramAccountsSnapshot,
    TransactionInfo,
)


class ChainClientProtocol(Protocol):
    def subscribe_logs(
        self, program_id: str, stop_event: asyncio.Event
    ) -> AsyncIterator[LogNotification]: ...

    async def get_transaction(self, signature: str) -> TransactionInfo | None: ...

    async def get_program_accounts(self, program_id: str) -> ProgramAccountsSnapshot: ...
