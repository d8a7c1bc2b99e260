"""Redis connection pool and pub/sub helper."""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_or_none() -> redis.Redis | None:
    """Get the Redis client, or None when Redis is not configured (tests, CLI tools)."""
    return _pool


async def publish_event(client: redis.Redis | None, channel: str, payload: dict[str, Any]) -> bool:
    """Publish a JSON event on a pub/sub channel.

    Notifications are fire-and-forget: a failed publish is logged and reported
    as False, never raised into the caller's write path.
    """
    if client is None:
        return False
    try:
        await client.publish(channel, json.dumps(payload, default=str))
    except Exception:
        logger.warning("pubsub_publish_failed", channel=channel, exc_info=True)
        return False
    return True
