"""Fixed-window rate limiter - Redis or in-memory fallback."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Count hits per key within a fixed window.

    ``check`` returns ``(allowed, retry_after_seconds)``. Redis failures fall
    back to the in-memory counters so a cache outage never blocks logins.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = "memory"
        self.redis = None
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._next_sweep = 0.0

        if redis_url:
            try:
                import redis.asyncio as redis_async
                self.redis = redis_async.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=timeout_seconds,
                    socket_timeout=timeout_seconds,
                )
                self.backend = "redis"
                logger.info("Using Redis for rate limiting")
            except Exception as e:
                logger.warning(f"Redis not available, using in-memory rate limiting: {e}")
        else:
            logger.info("Using in-memory rate limiting (Redis URL not provided)")

    async def check(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        if self.redis is not None:
            try:
                return await self._check_redis(key, limit, window_seconds)
            except Exception as e:
                logger.warning(f"Redis rate limit check failed, using memory: {e}")
        return await self._check_memory(key, limit, window_seconds)

    async def _check_redis(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        redis_key = f"ratelimit:{key}"
        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, window_seconds)
        if count <= limit:
            return True, None
        ttl = await self.redis.ttl(redis_key)
        return False, ttl if ttl and ttl > 0 else window_seconds

    def _sweep(self, now: float, window_seconds: int) -> None:
        """Drop lapsed windows, at most once per window."""
        if now < self._next_sweep:
            return
        expired = [key for key, (_, reset_at) in self._counters.items() if now >= reset_at]
        for key in expired:
            del self._counters[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit windows")
        self._next_sweep = now + window_seconds

    async def _check_memory(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        now = self._clock()
        async with self._lock:
            self._sweep(now, window_seconds)
            count, reset_at = self._counters.get(key, (0, now + window_seconds))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._counters[key] = (count, reset_at)
        if count <= limit:
            return True, None
        return False, max(1, int(reset_at - now))
