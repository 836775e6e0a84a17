"""P&L and portfolio endpoints.

GET /portfolio/{wallet}            : open positions with per-position P&L
GET /pnl/portfolio?wallet=         : portfolio P&L snapshot
GET /pnl/history?wallet=&days=     : historical P&L series
GET /assets/{mint}/performance     : daily average price series
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_common.database import get_readonly_db_session
from src.rwa_common.enums import PriceMark
from src.rwa_common.pubkey import require_pubkey
from src.rwa_common.response import ApiResponse, success_response
from src.rwa_pnl.application.schemas import (
    AssetPerformanceOut,
    PnLHistoryOut,
    PortfolioItemOut,
    PortfolioOut,
    PortfolioPnLOut,
)
from src.rwa_pnl.application.service import PnLService

router = APIRouter(tags=["pnl"])

_service = PnLService()


@router.get("/portfolio/{wallet}")
async def get_portfolio(
    wallet: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
) -> ApiResponse:
    require_pubkey(wallet, "wallet")
    items = await _service.get_portfolio(db, wallet)
    data = PortfolioOut(
        wallet=wallet,
        items=[PortfolioItemOut.from_domain(i) for i in items],
        total=len(items),
    )
    return success_response(data.model_dump(), request)


@router.get("/pnl/portfolio")
async def get_portfolio_pnl(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    wallet: str = Query(...),
) -> ApiResponse:
    require_pubkey(wallet, "wallet")
    result = await _service.calculate_portfolio_pnl(db, wallet)
    return success_response(PortfolioPnLOut.from_domain(result).model_dump(), request)


@router.get("/pnl/history")
async def get_pnl_history(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    wallet: str = Query(...),
    days: int = Query(30, ge=1, le=365),
    mark: PriceMark = Query(PriceMark.CURRENT),
) -> ApiResponse:
    require_pubkey(wallet, "wallet")
    points = await _service.get_historical_pnl(db, wallet, days, mark)
    data = PnLHistoryOut.build(wallet, days, mark.value, points)
    return success_response(data.model_dump(), request)


@router.get("/assets/{mint}/performance")
async def get_asset_performance(
    mint: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    days: int = Query(30, ge=1, le=365),
) -> ApiResponse:
    result = await _service.get_asset_performance(db, mint, days)
    return success_response(AssetPerformanceOut.from_domain(result).model_dump(), request)
