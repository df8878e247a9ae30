"""Redis client for the cross-process allocation lock."""

from functools import lru_cache

import redis.asyncio as aioredis

from cabbooking.config import settings


@lru_cache(maxsize=1)
def get_redis() -> aioredis.Redis:
    """Shared client; the pool is only created once the distributed lock is enabled."""
    return aioredis.Redis.from_url(settings.redis_url, decode_responses=True)
