"""Shared async Redis client for journey locks and notification pub/sub."""

from typing import Optional

import redis.asyncio as aioredis

from src.config import settings

_client: Optional[aioredis.Redis] = None


def get_redis() -> aioredis.Redis:
    """Return the process-wide client, creating its pool on first use."""
    global _client
    if _client is None:
        _client = aioredis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.external_timeout_seconds,
        )
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
