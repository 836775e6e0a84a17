"""Pydantic schemas for ledger read endpoints."""
from typing import Any

from pydantic import BaseModel


class TradeResponse(BaseModel):
    id: int
    sig: str
    mint: str
    ticker: str | None
    side: str
    wallet: str
    amount: int
    price_usdc: int         # total consideration, micro-USDC
    slot: int
    created_at: str


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    total: int
    limit: int
    offset: int


class DividendResponse(BaseModel):
    id: int
    pda: str
    mint: str
    ticker: str | None
    index: int
    total_amount: int
    supply_circ_at_open: int
    claimed_amount: int
    claim_count: int
    is_closed: bool
    closed_at: str | None
    slot: int
    created_at: str


class DividendListResponse(BaseModel):
    items: list[DividendResponse]
    total: int


class ClaimResponse(BaseModel):
    id: int
    pda: str | None = None
    dividend: str
    mint: str
    wallet: str
    amount: int
    slot: int
    created_at: str


class ClaimListResponse(BaseModel):
    items: list[ClaimResponse]
    total: int


class HistoryItem(BaseModel):
    id: int
    type: str               # trade | claim | dividend
    wallet: str
    mint: str
    ticker: str | None
    data: dict[str, Any]
    created_at: str


class HistoryResponse(BaseModel):
    items: list[HistoryItem]
    limit: int
    offset: int


class StatsResponse(BaseModel):
    assets: int
    trades: int
    positions: int
    dividends: int
    claims: int
    dead_letters: int
