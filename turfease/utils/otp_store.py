"""Pending one-time code storage - Redis or in-memory fallback.

At most one entry lives per key; ``put`` overwrites. Entries carry their own
absolute expiry and are checked lazily by the verification service, so a
lapsed code is reported as expired rather than silently missing. Past
``EXPIRED_RETENTION`` an entry reads as absent in both backends; Redis lets
the key expire on its own.
"""
from __future__ import annotations

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Optional, Protocol

from turfease.utils.datetime_helpers import ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Keep expired entries around briefly so late verifications report "expired"
EXPIRED_RETENTION = timedelta(hours=1)

_COMPARE_AND_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


@dataclass(frozen=True)
class OtpEntry:
    code: str
    email: str
    display_name: str
    role: str
    expires_at: datetime
    entry_id: str = field(default_factory=lambda: secrets.token_hex(8))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > ensure_utc(self.expires_at)

    def to_json(self) -> str:
        payload = asdict(self)
        payload["expires_at"] = ensure_utc(self.expires_at).isoformat()
        return json.dumps(payload, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "OtpEntry":
        payload = json.loads(raw)
        payload["expires_at"] = ensure_utc(datetime.fromisoformat(payload["expires_at"]))
        return cls(**payload)


class OtpStore(Protocol):
    backend: str

    async def put(self, key: str, entry: OtpEntry) -> None: ...

    async def get(self, key: str) -> Optional[OtpEntry]: ...

    async def delete(self, key: str) -> None: ...

    async def discard(self, key: str, entry: OtpEntry) -> bool: ...


class InMemoryOtpStore:
    """Process-local store; each instance is isolated."""

    backend = "memory"

    def __init__(self):
        self._entries: dict[str, OtpEntry] = {}
        self._lock = asyncio.Lock()

    async def put(self, key: str, entry: OtpEntry) -> None:
        async with self._lock:
            self._entries[key] = entry

    async def get(self, key: str) -> Optional[OtpEntry]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry and utc_now() > ensure_utc(entry.expires_at) + EXPIRED_RETENTION:
                del self._entries[key]
                return None
            return entry

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def discard(self, key: str, entry: OtpEntry) -> bool:
        """Delete ``key`` only if it still holds ``entry``."""
        async with self._lock:
            if self._entries.get(key) == entry:
                del self._entries[key]
                return True
            return False

    def __len__(self) -> int:
        return len(self._entries)


class RedisOtpStore:
    """Redis-backed store that survives restarts and expires keys on its own."""

    backend = "redis"

    def __init__(self, redis_url: str, prefix: str = "otp:", timeout_seconds: float = 5.0):
        import redis.asyncio as redis_async

        self.redis = redis_async.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=timeout_seconds,
            socket_timeout=timeout_seconds,
        )
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def put(self, key: str, entry: OtpEntry) -> None:
        ttl = ensure_utc(entry.expires_at) + EXPIRED_RETENTION - utc_now()
        seconds = max(1, int(ttl.total_seconds()))
        await self.redis.set(self._key(key), entry.to_json(), ex=seconds)

    async def get(self, key: str) -> Optional[OtpEntry]:
        raw = await self.redis.get(self._key(key))
        if not raw:
            return None
        try:
            return OtpEntry.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping unreadable OTP entry for {key}: {e}")
            await self.redis.delete(self._key(key))
            return None

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))

    async def discard(self, key: str, entry: OtpEntry) -> bool:
        removed = await self.redis.eval(_COMPARE_AND_DELETE, 1, self._key(key), entry.to_json())
        return bool(removed)

    async def close(self) -> None:
        await self.redis.aclose()


def create_otp_store(redis_url: Optional[str], timeout_seconds: float = 5.0) -> OtpStore:
    """Use Redis when a URL is configured, otherwise an in-memory store."""
    if redis_url:
        try:
            store = RedisOtpStore(redis_url, timeout_seconds=timeout_seconds)
            logger.info("Using Redis for pending verification codes")
            return store
        except Exception as e:
            logger.warning(f"Redis not available, using in-memory verification codes: {e}")
    else:
        logger.info("Using in-memory verification codes (Redis URL not provided)")
    return InMemoryOtpStore()
