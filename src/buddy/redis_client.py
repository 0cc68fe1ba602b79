"""Redis connection pool and live-update publishing.

Redis is optional: with no pool, request handlers get ``None`` and skip
publishing.
"""

import json
import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


async def get_redis_dep() -> redis.Redis | None:
    """FastAPI dependency: the Redis client, or None when Redis is not up."""
    return _pool


async def publish_event(client: object, channel: str, payload: dict) -> None:
    """Broadcast a JSON event for the client's live UI. Never raises."""
    if client is None:
        return
    try:
        await client.publish(channel, json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s", channel, exc_info=True)
