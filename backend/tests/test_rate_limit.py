"""Tests for the Redis sliding-window limiter, with an in-memory stand-in for Redis."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from gateway.middleware.rate_limit import RateLimitMiddleware


class FakePipeline:
    def __init__(self, store: dict):
        self.store = store
        self.key = None

    def zremrangebyscore(self, key, lo, hi):
        self.key = key

    def zadd(self, key, mapping):
        self.store.setdefault(key, []).extend(mapping)

    def zcard(self, key):
        pass

    def expire(self, key, seconds):
        pass

    async def execute(self):
        return [0, 1, len(self.store[self.key]), True]


class FakeRedis:
    def __init__(self):
        self.store: dict = {}

    def pipeline(self):
        return FakePipeline(self.store)


class BrokenPipeline(FakePipeline):
    async def execute(self):
        raise ConnectionError("redis went away")


class BrokenRedis(FakeRedis):
    def pipeline(self):
        return BrokenPipeline(self.store)


def _app(redis, prefixes=("/api/",)) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, redis=redis, limit=2, prefixes=prefixes)

    @app.get("/api/thing")
    async def thing():
        return {"ok": True}

    @app.get("/auth/confirm")
    async def confirm():
        return {"ok": True}

    @app.get("/clinic")
    async def page():
        return {"ok": True}

    return app


@pytest.mark.asyncio
class TestRateLimit:
    async def test_limits_api_routes(self):
        transport = ASGITransport(app=_app(FakeRedis()))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            codes = [(await client.get("/api/thing")).status_code for _ in range(3)]
        assert codes == [200, 200, 429]

    async def test_pages_are_not_limited(self):
        transport = ASGITransport(app=_app(FakeRedis()))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            codes = [(await client.get("/clinic")).status_code for _ in range(5)]
        assert codes == [200] * 5

    async def test_remaining_header(self):
        transport = ASGITransport(app=_app(FakeRedis()))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/api/thing")
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "1"

    async def test_each_prefix_has_its_own_bucket(self):
        redis = FakeRedis()
        transport = ASGITransport(app=_app(redis, prefixes=("/api/", "/auth/confirm")))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for _ in range(2):
                await client.get("/api/thing")
            resp = await client.get("/auth/confirm")
        assert resp.status_code == 200
        assert sorted(redis.store) == ["ratelimit:/api/:127.0.0.1", "ratelimit:/auth/confirm:127.0.0.1"]

    async def test_redis_errors_fail_open(self):
        transport = ASGITransport(app=_app(BrokenRedis()))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            codes = [(await client.get("/api/thing")).status_code for _ in range(4)]
        assert codes == [200] * 4
