"""
Redis-based distributed lock.

Wraps the vehicle-allocation critical section when several API processes
share one database, so two processes never pick the same vehicle between
selection and reservation.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  ``acquire`` can poll for a bounded
time instead of failing immediately.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """Raised by the context manager when the lock stays held by someone else."""


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 10,
        wait_seconds: float = 0.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def acquire(self, wait_seconds: float | None = None) -> bool:
        """Try to acquire, polling up to *wait_seconds*. Returns True on success."""
        wait = self.wait_seconds if wait_seconds is None else wait_seconds
        deadline = time.monotonic() + wait
        while True:
            if await self.redis.set(self.key, self.token, nx=True, ex=self.ttl):
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        try:
            acquired = await self.acquire()
        except RedisError as exc:
            raise LockNotAcquired(f"Could not acquire lock: {self.key} ({exc})") from exc
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        try:
            await self.release()
        except RedisError:
            logger.warning("Release of %s failed; it expires in %ss", self.key, self.ttl)
