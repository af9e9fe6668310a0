"""
Redis-backed sliding window rate limiter for the JSON API.

Only paths under the configured prefixes are counted, each prefix in its own
bucket per client; page navigation and access redirects are never limited.
When Redis is unreachable the limiter fails open and waits RECONNECT_AFTER
seconds before trying to connect again.
"""

import time
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

import redis.asyncio as aioredis

from gateway.config import settings

logger = logging.getLogger(__name__)

# Under a limited prefix but never counted
EXEMPT_PATHS = frozenset({"/api/health"})

WINDOW_SECONDS = 60
RECONNECT_AFTER = 30.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, redis: aioredis.Redis | None = None,
                 limit: int | None = None, prefixes: tuple[str, ...] | None = None,
                 redis_url: str | None = None):
        super().__init__(app)
        self._redis = redis
        self._redis_url = redis_url or settings.redis_url
        self._retry_at = 0.0
        self.limit = limit or settings.rate_limit_per_minute
        self.prefixes = prefixes if prefixes is not None else settings.rate_limited_path_prefixes

    async def _connect(self) -> aioredis.Redis | None:
        if self._redis is not None:
            return self._redis
        if time.monotonic() < self._retry_at:
            return None
        client = aioredis.from_url(self._redis_url, decode_responses=True)
        try:
            await client.ping()
        except Exception as exc:
            logger.warning("Rate limiter: Redis unavailable (%s), passing through", exc)
            self._retry_at = time.monotonic() + RECONNECT_AFTER
            return None
        self._redis = client
        return client

    def _bucket(self, path: str) -> str | None:
        """Prefix counting this path, or None when it is not limited."""
        if path in EXEMPT_PATHS:
            return None
        return next((p for p in self.prefixes if path.startswith(p)), None)

    async def _count(self, r: aioredis.Redis, key: str) -> int:
        now = time.time()
        pipe = r.pipeline()
        pipe.zremrangebyscore(key, 0, now - WINDOW_SECONDS)
        pipe.zadd(key, {str(now): now})
        pipe.zcard(key)
        pipe.expire(key, WINDOW_SECONDS)
        results = await pipe.execute()
        return results[2]

    async def dispatch(self, request: Request, call_next):
        bucket = self._bucket(request.url.path)
        if bucket is None:
            return await call_next(request)

        r = await self._connect()
        if r is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        try:
            used = await self._count(r, f"ratelimit:{bucket}:{client_ip}")
        except Exception as exc:
            logger.warning("Rate limiter Redis error: %s", exc)
            return await call_next(request)

        if used > self.limit:
            logger.info("Rate limit hit for %s on %s", client_ip, bucket)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.limit - used))
        return response
