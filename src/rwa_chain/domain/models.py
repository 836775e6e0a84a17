"""Domain models for rwa_chain: pure dataclasses, no transport dependency."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LogNotification:
    """One `logsNotification` for a confirmed transaction."""

    signature: str
    logs: list[str]
    slot: int
    err: object | None = None

    @property
    def failed(self) -> bool:
        return self.err is not None


@dataclass(frozen=True)
class TransactionInfo:
    """Subset of getTransaction the indexer needs."""

    signature: str
    account_keys: list[str]       # message order, then loaded addresses
    slot: int
    block_time: int | None        # unix seconds
    logs: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProgramAccount:
    address: str
    data: bytes


@dataclass(frozen=True)
class ProgramAccountsSnapshot:
    """getProgramAccounts result plus the slot it was read at."""

    slot: int
    accounts: list[ProgramAccount]
