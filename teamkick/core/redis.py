"""Redis connection management.

The client lives on ``app.state.redis``; it is created by the app factory and
closed on shutdown.
"""

from __future__ import annotations

import redis.asyncio as redis
from fastapi import Request


def create_redis(url: str) -> redis.Redis:
    """Create a Redis client. Connections are opened lazily on first use."""
    return redis.from_url(url, decode_responses=True)


def get_redis(request: Request) -> redis.Redis:
    """FastAPI dependency returning the application's Redis client."""
    return request.app.state.redis


async def close_redis(client: redis.Redis | None) -> None:
    """Close the Redis connection pool."""
    if client is not None:
        await client.aclose()
