"""
Per-client request limit on the scheduling API, counted in Redis.

Clients are identified by X-Client-ID (or X-API-Key). Anonymous requests,
health checks and deployments without REDIS_URL are not limited.
ENV: REDIS_URL, RATE_LIMIT_PER_MIN.
"""
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware

from publication_service.config import get_settings
from publication_service.logging_config import get_logger
from publication_service.schemas.common import error_envelope

logger = get_logger(__name__)

REDIS_KEY_PREFIX = "rl:"
WINDOW_SECONDS = 60
EXEMPT_PATHS = ("/", "/health", "/api/healthz", "/api/readyz")


def client_key(request: Request) -> Optional[str]:
    client_id = request.headers.get("X-Client-ID", "").strip()
    if client_id:
        return f"client:{client_id}"
    api_key = request.headers.get("X-API-Key", "").strip()
    if api_key:
        return f"key:{api_key[:32]}"
    return None


@dataclass
class WindowResult:
    allowed: bool
    count: int


class SlidingWindowLimiter:
    """Timestamps of recent requests live in one sorted set per client; older entries are trimmed on each hit."""

    def __init__(self, redis_url: str, limit: int, window_seconds: int = WINDOW_SECONDS) -> None:
        self.redis_url = redis_url
        self.limit = limit
        self.window_seconds = window_seconds

    async def hit(self, key: str) -> WindowResult:
        """Record one request for key. Redis errors let the request through."""
        now = time.time()
        rkey = REDIS_KEY_PREFIX + key
        try:
            client = Redis.from_url(self.redis_url, decode_responses=True)
            try:
                pipe = client.pipeline()
                pipe.zadd(rkey, {uuid.uuid4().hex: now})
                pipe.zremrangebyscore(rkey, "-inf", now - self.window_seconds)
                pipe.zcard(rkey)
                pipe.expire(rkey, self.window_seconds + 10)
                _, _, count, _ = await pipe.execute()
            finally:
                await client.aclose()
        except Exception as e:
            logger.warning("rate_limit.redis_error", key=key, error=str(e))
            return WindowResult(allowed=True, count=0)
        return WindowResult(allowed=count <= self.limit, count=count)


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        key = client_key(request)
        if not settings.redis_url or not key or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limiter = SlidingWindowLimiter(settings.redis_url, settings.rate_limit_per_min)
        result = await limiter.hit(key)
        if result.allowed:
            return await call_next(request)

        logger.info("rate_limit.exceeded", key=key, limit=limiter.limit, count=result.count, path=request.url.path)
        return JSONResponse(
            status_code=429,
            content=error_envelope("rate_limited", f"Rate limit exceeded ({limiter.limit} requests/min)."),
            headers={"Retry-After": str(limiter.window_seconds)},
        )
