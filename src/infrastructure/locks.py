"""
Redis-based distributed lock.

Serialises booking requests that carry the same ``Idempotency-Key`` so a
client retry racing its original request cannot create a second booking
(and consume a second seat) before the first one commits.  The seat
counter itself is never guarded by this lock: it relies on the
conditional ``UPDATE`` in ``RideRepository.decrement_seats``.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

from src.domain.exceptions import ConflictError

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        released = await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        if not released:
            logger.warning("Lock %s expired before release", self.key)

    async def __aenter__(self):
        if not await self.acquire():
            raise ConflictError(
                "A request with this idempotency key is already in progress",
                {"lock": self.key},
            )
        return self

    async def __aexit__(self, *args):
        await self.release()


def idempotency_lock(client: aioredis.Redis, key: str, ttl_seconds: int) -> DistributedLock:
    return DistributedLock(client, f"booking:idempotency:{key}", ttl_seconds=ttl_seconds)
