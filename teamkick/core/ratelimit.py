"""
Fixed-window rate limiting keyed by client IP.

Counters live in Redis as ``ratelimit:<ip>:<window>`` and are bumped with
``INCR`` + ``EXPIRE`` in a single MULTI/EXEC pipeline. If Redis is
unreachable requests are let through.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

log = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class RateLimiter:
    def __init__(self, client: redis.Redis, limit: int, window_seconds: int):
        self.client = client
        self.limit = limit
        self.window_seconds = window_seconds

    def _window(self, now: float) -> int:
        return int(now // self.window_seconds)

    async def hit(self, key: str, now: Optional[float] = None) -> RateLimitResult:
        """Count one request for ``key`` and report whether it may proceed."""
        now = time.time() if now is None else now
        window = self._window(now)
        reset = int((window + 1) * self.window_seconds - now)
        counter_key = f"ratelimit:{key}:{window}"
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(counter_key)
                pipe.expire(counter_key, self.window_seconds)
                count, _ = await pipe.execute()
        except RedisError:
            log.warning("ratelimit.store_unavailable", exc_info=True)
            return RateLimitResult(True, self.limit, self.limit, reset)

        count = int(count)
        return RateLimitResult(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_seconds=reset,
        )
