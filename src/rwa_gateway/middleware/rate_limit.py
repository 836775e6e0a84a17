"""Fixed-window rate limiting per client IP, counted in Redis.

Rules:
  - POST /api/v1/sync/assets: SYNC_RATE_LIMIT_PER_MINUTE (RPC-heavy)
  - everything else under /api/: RATE_LIMIT_PER_MINUTE
  - /health is never limited

Redis logic:
    count = INCR ratelimit:{ip}:{group}:{window}
    if count == 1: EXPIRE key 60
    if count > limit: 429 + Retry-After

If Redis is unreachable the request is let through and a warning logged;
the indexer API stays readable without its limiter.
"""

import logging
import time
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.rwa_common.errors import RateLimitError
from src.rwa_common.redis_client import get_redis
from src.rwa_common.response import error_response

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
_SYNC_PATH = "/api/v1/sync/assets"


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit_per_minute: int = 120,
        sync_limit_per_minute: int = 2,
        redis_getter: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        super().__init__(app)
        self.limit_per_minute = limit_per_minute
        self.sync_limit_per_minute = sync_limit_per_minute
        self._redis_getter = redis_getter

    def _rule(self, request: Request) -> tuple[str, int] | None:
        path = request.url.path
        if not path.startswith("/api/"):
            return None
        if request.method == "POST" and path == _SYNC_PATH:
            return "sync", self.sync_limit_per_minute
        return "api", self.limit_per_minute

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rule = self._rule(request)
        if rule is None:
            return await call_next(request)
        group, limit = rule

        now = time.time()
        window = int(now // WINDOW_SECONDS)
        key = f"ratelimit:{client_ip(request)}:{group}:{window}"
        try:
            redis = await self._redis_getter()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
        except (RedisError, OSError) as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > limit:
            err = RateLimitError()
            retry_after = WINDOW_SECONDS - int(now % WINDOW_SECONDS)
            logger.info("Rate limit hit: key=%s count=%d limit=%d", key, count, limit)
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message, request).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
