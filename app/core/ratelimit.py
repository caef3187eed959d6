"""
Request rate limiting.

A sliding-window limiter backed by Redis. When Redis is not configured the
no-op limiter allows every request. Limiters are applied per route as FastAPI
dependencies via `rate_limit("upload")` and similar.
"""

import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import RateLimitError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float  # epoch seconds when the oldest counted request leaves the window


class NoopRateLimiter:
    """Allows every request; used when Redis is not configured."""

    def __init__(self, requests: int, window_seconds: int):
        self.requests = requests
        self.window_seconds = window_seconds

    async def limit(self, identifier: str) -> RateLimitResult:
        return RateLimitResult(
            success=True,
            limit=self.requests,
            remaining=self.requests,
            reset=time.time(),
        )

    async def close(self) -> None:
        return None


class RateLimiter:
    """Sliding-window limiter over a Redis sorted set per identifier."""

    def __init__(
        self,
        redis: aioredis.Redis,
        requests: int,
        window_seconds: int,
        prefix: str = "ratelimit",
    ):
        self.redis = redis
        self.requests = requests
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"

    async def limit(self, identifier: str) -> RateLimitResult:
        """
        Count a request for `identifier` and report whether it is allowed.

        Redis failures allow the request and are logged.
        """
        key = self._key(identifier)
        now = time.time()
        window_start = now - self.window_seconds

        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zadd(key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.expire(key, self.window_seconds)
            _, _, count, oldest, _ = await pipe.execute()
        except RedisError as e:
            logger.error("Rate limiter unavailable, allowing request", key=key, error=str(e))
            return RateLimitResult(
                success=True, limit=self.requests, remaining=self.requests, reset=now
            )

        oldest_score = oldest[0][1] if oldest else now
        return RateLimitResult(
            success=count <= self.requests,
            limit=self.requests,
            remaining=max(0, self.requests - count),
            reset=oldest_score + self.window_seconds,
        )

    async def close(self) -> None:
        await self.redis.aclose()


def create_rate_limiter(
    requests: Optional[int] = None, window_seconds: Optional[int] = None
):
    """Build a Redis limiter when configured, otherwise the no-op limiter."""
    requests = requests or settings.RATE_LIMIT_REQUESTS
    window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS

    if not settings.rate_limit_enabled:
        logger.info("Rate limiting disabled, Redis not configured")
        return NoopRateLimiter(requests, window_seconds)

    redis = aioredis.from_url(
        settings.RATE_LIMIT_REDIS_URL,
        password=settings.RATE_LIMIT_REDIS_TOKEN,
        decode_responses=True,
    )
    logger.info(
        "Rate limiting enabled",
        requests=requests,
        window_seconds=window_seconds,
    )
    return RateLimiter(redis, requests, window_seconds, prefix=settings.RATE_LIMIT_PREFIX)


_rate_limiter = None


def get_rate_limiter():
    """Process-wide limiter, created on first use."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = create_rate_limiter()
    return _rate_limiter


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


def rate_limit(scope: str, key_fn: Callable[[Request], str] = client_identifier):
    """
    Dependency factory limiting a route per client.

    Usage:
        @router.post("/upload", dependencies=[Depends(rate_limit("upload"))])
    """

    async def dependency(request: Request, limiter=Depends(get_rate_limiter)) -> None:
        identifier = f"{scope}:{key_fn(request)}"
        result = await limiter.limit(identifier)
        if not result.success:
            retry_after = max(1, int(result.reset - time.time()) + 1)
            logger.warning(
                "Rate limit exceeded",
                scope=scope,
                identifier=identifier,
                retry_after=retry_after,
            )
            raise RateLimitError(retry_after=retry_after)

    return dependency


async def close_rate_limiter() -> None:
    """Close the process-wide limiter's connections."""
    global _rate_limiter
    if _rate_limiter is not None:
        await _rate_limiter.close()
        _rate_limiter = None
