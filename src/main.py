"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.rwa_assets.api.router import router as assets_router
from src.rwa_common.database import async_session_factory, dispose_engines, engine
from src.rwa_common.errors import AppError, InternalError, InvalidQueryError
from src.rwa_common.redis_client import close_redis, get_redis
from src.rwa_common.response import error_response
from src.rwa_gateway.middleware.rate_limit import RateLimitMiddleware
from src.rwa_gateway.middleware.request_log import RequestLogMiddleware
from src.rwa_indexer.application.runtime import IndexerRuntime
from src.rwa_ledger.api.router import router as ledger_router
from src.rwa_pnl.api.router import router as pnl_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the indexer. Shutdown: stop and dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()

    runtime: IndexerRuntime | None = None
    if settings.INDEXER_ENABLED:
        runtime = IndexerRuntime.build(settings, async_session_factory)
        await runtime.start()
        app.state.sync_service = runtime.sync_service
    app.state.runtime = runtime
    yield
    # Shutdown
    if runtime is not None:
        await runtime.stop()
    await dispose_engines()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    RateLimitMiddleware,
    limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    sync_limit_per_minute=settings.SYNC_RATE_LIMIT_PER_MINUTE,
)
app.add_middleware(RequestLogMiddleware)


def _error_json(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return _error_json(request, InvalidQueryError(detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_json(request, InternalError())


app.include_router(assets_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(pnl_router, prefix="/api/v1")


@app.get("/health")
async def health(request: Request) -> dict[str, object]:
    runtime: IndexerRuntime | None = getattr(request.app.state, "runtime", None)
    indexer: dict[str, object] = {"enabled": runtime is not None}
    if runtime is not None:
        indexer["running"] = runtime.listener.running
        indexer["connected"] = runtime.chain.connected
        indexer["queue_size"] = runtime.listener.queue.qsize()
        indexer["stats"] = dict(runtime.listener.stats)
    return {"status": "ok", "version": "0.1.0", "indexer": indexer}
