"""Redis connection pool backing the per-booking claim / release locks."""

from typing import Optional

import redis.asyncio as aioredis

from taxe.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


def _get_pool() -> aioredis.ConnectionPool:
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return _pool


async def get_redis() -> aioredis.Redis:
    """FastAPI dependency: a client bound to the shared pool."""
    return aioredis.Redis(connection_pool=_get_pool())


async def close_redis() -> None:
    """Drop the pool on shutdown; the next request opens a fresh one."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
