"""Tests for the fixed-window rate limiter."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import TimeoutError as RedisTimeoutError

from turfease.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_memory_limiter_blocks_after_limit():
    limiter = RateLimiter()

    results = [await limiter.check("auth:login:1.2.3.4", limit=3, window_seconds=60) for _ in range(4)]

    assert [allowed for allowed, _ in results] == [True, True, True, False]
    assert 1 <= results[-1][1] <= 60


@pytest.mark.asyncio
async def test_keys_are_independent():
    limiter = RateLimiter()
    await limiter.check("a", limit=1, window_seconds=60)

    allowed, _ = await limiter.check("b", limit=1, window_seconds=60)

    assert allowed is True


@pytest.mark.asyncio
async def test_window_resets_after_it_lapses():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    await limiter.check("auth:login:1.2.3.4", limit=1, window_seconds=60)
    blocked, _ = await limiter.check("auth:login:1.2.3.4", limit=1, window_seconds=60)

    clock.now += 61
    allowed, _ = await limiter.check("auth:login:1.2.3.4", limit=1, window_seconds=60)

    assert blocked is False
    assert allowed is True


@pytest.mark.asyncio
async def test_lapsed_windows_are_swept():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    for index in range(500):
        await limiter.check(f"auth:login:10.0.{index // 256}.{index % 256}", limit=5, window_seconds=1)
    assert len(limiter._counters) == 500

    clock.now += 2
    await limiter.check("auth:login:192.168.0.1", limit=5, window_seconds=1)

    assert list(limiter._counters) == ["auth:login:192.168.0.1"]


@pytest.mark.asyncio
async def test_live_windows_survive_sweep():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    await limiter.check("short", limit=5, window_seconds=1)
    await limiter.check("long", limit=1, window_seconds=600)

    clock.now += 2
    allowed, retry_after = await limiter.check("long", limit=1, window_seconds=600)

    assert "short" not in limiter._counters
    assert allowed is False
    assert retry_after > 0


def test_redis_client_has_socket_timeouts():
    with patch("redis.asyncio.from_url") as from_url:
        limiter = RateLimiter("redis://localhost:6379/0", timeout_seconds=2.5)

    assert limiter.backend == "redis"
    kwargs = from_url.call_args.kwargs
    assert kwargs["socket_connect_timeout"] == 2.5
    assert kwargs["socket_timeout"] == 2.5


@pytest.mark.asyncio
async def test_redis_timeout_falls_back_to_memory():
    with patch("redis.asyncio.from_url") as from_url:
        client = MagicMock()
        client.incr = AsyncMock(side_effect=RedisTimeoutError("Timeout reading from socket"))
        from_url.return_value = client
        limiter = RateLimiter("redis://localhost:6379/0", timeout_seconds=0.1)

    allowed, retry_after = await limiter.check("auth:login:1.2.3.4", limit=1, window_seconds=60)

    assert allowed is True
    assert retry_after is None
    assert "auth:login:1.2.3.4" in limiter._counters
