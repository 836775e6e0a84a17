"""Ledger read endpoints: trades, dividends, claims, activity history, stats."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_common.database import get_readonly_db_session
from src.rwa_common.enums import HistoryType
from src.rwa_common.errors import DividendNotFoundError
from src.rwa_common.pubkey import require_pubkey
from src.rwa_common.response import ApiResponse, success_response
from src.rwa_ledger.application.schemas import (
    ClaimListResponse,
    ClaimResponse,
    DividendListResponse,
    DividendResponse,
    HistoryItem,
    HistoryResponse,
    StatsResponse,
    TradeListResponse,
    TradeResponse,
)
from src.rwa_ledger.infrastructure.dividends_repository import DividendsRepository
from src.rwa_ledger.infrastructure.history_repository import HistoryRepository
from src.rwa_ledger.infrastructure.trades_repository import TradesRepository

router = APIRouter(tags=["ledger"])
_trades = TradesRepository()
_dividends = DividendsRepository()
_history = HistoryRepository()

_HISTORY_KINDS = {
    HistoryType.ALL: {"trades", "claims", "dividends"},
    HistoryType.TRADES: {"trades"},
    HistoryType.CLAIMS: {"claims"},
    HistoryType.DIVIDENDS: {"dividends"},
}


@router.get("/trades")
async def list_trades(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    mint: str | None = Query(None),
    wallet: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    if mint is not None:
        require_pubkey(mint, "mint")
    if wallet is not None:
        require_pubkey(wallet, "wallet")
    items, total = await _trades.list_trades(db, mint, wallet, limit, offset)
    data = TradeListResponse(
        items=[TradeResponse(**t) for t in items], total=total, limit=limit, offset=offset
    )
    return success_response(data.model_dump(), request)


@router.get("/dividends")
async def list_dividends(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    mint: str | None = Query(None),
) -> ApiResponse:
    items = await _dividends.list_dividends(db, mint)
    data = DividendListResponse(items=[DividendResponse(**d) for d in items], total=len(items))
    return success_response(data.model_dump(), request)


@router.get("/claims")
async def list_claims(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    wallet: str | None = Query(None),
    dividend: str | None = Query(None, description="Dividend PDA"),
) -> ApiResponse:
    if dividend is not None and not await _dividends.dividend_exists(db, dividend):
        raise DividendNotFoundError(dividend)
    items = await _dividends.list_claims(db, wallet, dividend)
    data = ClaimListResponse(items=[ClaimResponse(**c) for c in items], total=len(items))
    return success_response(data.model_dump(), request)


@router.get("/history")
async def list_history(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    wallet: str = Query(...),
    type: HistoryType = Query(HistoryType.ALL),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    require_pubkey(wallet, "wallet")
    items = await _history.list_history(db, wallet, _HISTORY_KINDS[type], limit, offset)
    data = HistoryResponse(items=[HistoryItem(**h) for h in items], limit=limit, offset=offset)
    return success_response(data.model_dump(), request)


@router.get("/stats")
async def stats(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
) -> ApiResponse:
    counts = await _history.stats(db)
    return success_response(StatsResponse(**counts).model_dump(), request)
