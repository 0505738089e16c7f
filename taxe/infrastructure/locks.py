"""
Redis-based distributed lock.

Held around every booking mutation (edit, claim, release) so that two
company admins cannot both claim the same Pending booking and an edit
cannot interleave with a release.  One lock per booking id, keyed
``lock:booking:<id>``.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

import redis.asyncio as aioredis

from taxe.config import settings

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """Another request currently holds the lock."""


class DistributedLock:
    """Owner-checked lock on ``lock:<scope>:<name>`` (or ``lock:<name>``)."""

    def __init__(
        self,
        client: aioredis.Redis,
        name: str,
        ttl_seconds: Optional[int] = None,
        scope: Optional[str] = None,
    ):
        self.redis = client
        self.key = f"lock:{scope}:{name}" if scope else f"lock:{name}"
        self.ttl = ttl_seconds or settings.booking_lock_ttl_seconds
        self.token = str(uuid.uuid4())

    @classmethod
    def for_booking(
        cls,
        client: aioredis.Redis,
        booking_id: int,
        ttl_seconds: Optional[int] = None,
    ) -> "DistributedLock":
        return cls(
            client, str(booking_id), ttl_seconds=ttl_seconds, scope="booking"
        )

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Release only if we still own the lock.  False once it has expired."""
        released = bool(
            await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        )
        if not released:
            logger.warning("Lock %s expired before release", self.key)
        return released

    async def __aenter__(self) -> "DistributedLock":
        if not await self.acquire():
            logger.debug("Lock %s is held elsewhere", self.key)
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *exc) -> None:
        await self.release()
