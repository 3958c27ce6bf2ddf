from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Awaitable

import redis.asyncio as redis_async
from redis.exceptions import RedisError, WatchError
from fastapi import Request

from cartshare.core.config import settings
from cartshare.core.logging import get_logger

logger = get_logger("cartshare.rate_limit")


@dataclass
class RateLimitExceeded(Exception):
    reset_in: float


class RateLimiter:
    """Fixed-window rate limiter backed by Redis, with an in-process fallback."""

    def __init__(self, redis_url: str | None = None, prefix: str = "rl") -> None:
        self._prefix = prefix
        self._memory_store: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()
        self._redis = None
        if redis_url:
            self._redis = redis_async.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def _hit_redis(self, key: str, limit: int, period_seconds: int) -> float | None:
        if not self._redis:
            return None

        redis_key = f"{self._prefix}:{key}:{period_seconds}"
        try:
            async with self._redis.pipeline() as pipe:
                while True:
                    try:
                        await pipe.watch(redis_key)
                        current = await pipe.get(redis_key)
                        ttl = await pipe.ttl(redis_key)
                        if current is None:
                            pipe.multi()
                            pipe.set(redis_key, 1, ex=period_seconds, nx=True)
                            await pipe.execute()
                            return float(period_seconds)

                        if int(current) >= limit:
                            ttl = ttl if ttl and ttl > 0 else period_seconds
                            raise RateLimitExceeded(reset_in=float(ttl))

                        pipe.multi()
                        pipe.incr(redis_key, 1)
                        if ttl == -1:
                            pipe.expire(redis_key, period_seconds)
                            ttl = period_seconds
                        await pipe.execute()
                        return float(ttl if ttl and ttl > 0 else period_seconds)
                    except WatchError:
                        continue
        except RedisError as exc:
            logger.warning("Redis unavailable for rate limiting, using memory store", extra={"error": str(exc)})
            return None

    async def check(self, key: str, limit: int, period_seconds: int) -> float:
        """Increment the counter and return the remaining window in seconds."""
        ttl = await self._hit_redis(key, limit, period_seconds)
        if ttl is not None:
            return ttl

        now = time.monotonic()
        async with self._lock:
            self._prune_expired(now)
            count, reset_at = self._memory_store.get(key, (0, now + period_seconds))
            if now > reset_at:
                count = 0
                reset_at = now + period_seconds
            if count >= limit:
                raise RateLimitExceeded(reset_in=max(0.0, reset_at - now))
            self._memory_store[key] = (count + 1, reset_at)
            return max(0.0, reset_at - now)

    def _prune_expired(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._memory_store.items() if reset_at <= now]
        for key in expired:
            del self._memory_store[key]

    def reset(self) -> None:
        self._memory_store.clear()


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(redis_url=settings.REDIS_URL)
    return _rate_limiter


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


def rate_limit(
    limit: int,
    period_seconds: int = 60,
    scope: str = "default",
) -> Callable[[Request], Awaitable[None]]:
    async def dependency(request: Request) -> None:
        key = f"{scope}:{client_ip(request)}"
        limiter = get_rate_limiter()
        reset_in = await limiter.check(key, limit=limit, period_seconds=period_seconds)
        request.state.rate_limit_reset_in = reset_in
        return None

    return dependency
