"""rwa_assets REST endpoints.

GET  /assets           : list/query (mint, q, sort)
GET  /assets/{mint}    : one asset
POST /sync/assets      : manual re-sync from the registry program
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_assets.application.schemas import SyncReportOut
from src.rwa_assets.application.service import AssetApplicationService
from src.rwa_assets.application.sync_service import AssetSyncService
from src.rwa_common.database import get_readonly_db_session
from src.rwa_common.errors import AssetSyncError
from src.rwa_common.response import ApiResponse, success_response

router = APIRouter(tags=["assets"])

_service = AssetApplicationService()


def get_sync_service(request: Request) -> AssetSyncService:
    """The process-wide sync service, created in the app lifespan."""
    service = getattr(request.app.state, "sync_service", None)
    if service is None:
        raise AssetSyncError("sync service is not running")
    return service


@router.get("/assets")
async def list_assets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
    mint: str | None = Query(None, description="Exact mint address"),
    q: str | None = Query(None, description="Ticker substring or mint/issuer prefix"),
    sort: str | None = Query(None, description="created | name | price; prefix '-' to reverse"),
) -> ApiResponse:
    result = await _service.list_assets(db, mint, q, sort)
    return success_response(result.model_dump(), request)


@router.get("/assets/{mint}")
async def get_asset(
    mint: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_readonly_db_session)],
) -> ApiResponse:
    result = await _service.get_asset(db, mint)
    return success_response(result.model_dump(), request)


@router.post("/sync/assets")
async def sync_assets(
    request: Request,
    sync_service: Annotated[AssetSyncService, Depends(get_sync_service)],
) -> ApiResponse:
    report = await sync_service.sync_assets()
    return success_response(SyncReportOut.from_report(report).model_dump(), request)
