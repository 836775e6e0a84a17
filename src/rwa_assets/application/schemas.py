"""Pydantic schemas for rwa_assets API responses."""

from pydantic import BaseModel

from src.rwa_assets.domain.models import Asset, SyncReport
from src.rwa_common.micro_units import micro_to_display


class AssetOut(BaseModel):
    mint: str
    address: str | None
    ticker: str | None
    issuer: str | None
    usdc_mint: str | None
    decimals: int | None
    price_usdc: int
    price_display: str
    total_supply: int
    free_float: int
    circulating: int
    last_slot: int
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, a: Asset) -> "AssetOut":
        return cls(
            mint=a.mint,
            address=a.address,
            ticker=a.ticker,
            issuer=a.issuer,
            usdc_mint=a.usdc_mint,
            decimals=a.decimals,
            price_usdc=a.price_usdc,
            price_display=micro_to_display(a.price_usdc),
            total_supply=a.total_supply,
            free_float=a.free_float,
            circulating=a.total_supply - a.free_float,
            last_slot=a.last_slot,
            created_at=a.created_at.isoformat(),
            updated_at=a.updated_at.isoformat(),
        )


class AssetListResponse(BaseModel):
    items: list[AssetOut]
    total: int


class SyncReportOut(BaseModel):
    slot: int
    fetched: int
    inserted: int
    updated: int
    unchanged: int
    skipped: int
    failed: int
    failed_addresses: list[str]

    @classmethod
    def from_report(cls, r: SyncReport) -> "SyncReportOut":
        return cls(
            slot=r.slot,
            fetched=r.fetched,
            inserted=r.inserted,
            updated=r.updated,
            unchanged=r.unchanged,
            skipped=r.skipped,
            failed=r.failed,
            failed_addresses=list(r.failed_addresses),
        )
