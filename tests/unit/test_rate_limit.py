"""Tests for RateLimitMiddleware with an in-memory Redis stand-in."""

from collections import defaultdict

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.rwa_gateway.middleware.rate_limit import RateLimitMiddleware


class FakeRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = defaultdict(int)
        self.expiries: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counts[key] += 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.expiries[key] = seconds
        return True


def _app(redis_getter, limit: int = 2, sync_limit: int = 1) -> FastAPI:  # type: ignore[no-untyped-def]
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        limit_per_minute=limit,
        sync_limit_per_minute=sync_limit,
        redis_getter=redis_getter,
    )

    @app.get("/api/v1/assets")
    async def assets() -> dict[str, str]:
        return {"ok": "assets"}

    @app.post("/api/v1/sync/assets")
    async def sync() -> dict[str, str]:
        return {"ok": "sync"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestRateLimit:
    async def test_blocks_after_limit(self) -> None:
        redis = FakeRedis()

        async def getter() -> FakeRedis:
            return redis

        async with _client(_app(getter)) as client:
            assert (await client.get("/api/v1/assets")).status_code == 200
            assert (await client.get("/api/v1/assets")).status_code == 200
            resp = await client.get("/api/v1/assets")

        assert resp.status_code == 429
        assert resp.json()["code"] == 9001
        assert 0 < int(resp.headers["Retry-After"]) <= 60
        assert set(redis.expiries.values()) == {60}

    async def test_sync_has_its_own_bucket(self) -> None:
        redis = FakeRedis()

        async def getter() -> FakeRedis:
            return redis

        async with _client(_app(getter)) as client:
            assert (await client.post("/api/v1/sync/assets")).status_code == 200
            assert (await client.post("/api/v1/sync/assets")).status_code == 429
            assert (await client.get("/api/v1/assets")).status_code == 200

    async def test_health_not_limited(self) -> None:
        redis = FakeRedis()

        async def getter() -> FakeRedis:
            return redis

        async with _client(_app(getter, limit=0)) as client:
            assert (await client.get("/health")).status_code == 200
        assert redis.counts == {}

    async def test_forwarded_for_keys_by_first_hop(self) -> None:
        redis = FakeRedis()

        async def getter() -> FakeRedis:
            return redis

        async with _client(_app(getter)) as client:
            await client.get("/api/v1/assets", headers={"X-Forwarded-For": "10.0.0.9, 10.0.0.1"})
        assert any(k.startswith("ratelimit:10.0.0.9:api:") for k in redis.counts)

    async def test_fails_open_when_redis_down(self) -> None:
        async def getter() -> FakeRedis:
            raise RedisConnectionError("refused")

        async with _client(_app(getter, limit=0)) as client:
            assert (await client.get("/api/v1/assets")).status_code == 200
