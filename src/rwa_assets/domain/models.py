"""Domain models for rwa_assets: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class Asset:
    id: int
    mint: str
    address: str | None
    ticker: str | None
    issuer: str | None
    usdc_mint: str | None
    decimals: int | None
    price_usdc: int        # micro-USDC per share
    total_supply: int
    free_float: int
    last_slot: int
    created_at: datetime
    updated_at: datetime


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"   # identical, or snapshot older than last_slot


@dataclass
class SyncReport:
    slot: int = 0
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0          # not an Asset account
    failed: int = 0
    failed_addresses: list[str] = field(default_factory=list)

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.INSERTED:
            self.inserted += 1
        elif outcome is UpsertOutcome.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1
