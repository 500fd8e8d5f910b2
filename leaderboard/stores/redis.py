"""Redis connection for the shared ranking cache.

Handles:
- Client lifecycle (init on startup, close on shutdown)
- Key names for the leaderboard structures

Keys:
- leaderboard:scores: sorted set, member = encoded user id, score = total_score
- users:metadata: hash, field = user id, value = JSON {"name", "image"}

Only used when CACHE_BACKEND=redis; the default backend keeps both
structures in process memory.
"""

import logging

import redis.asyncio as redis

from leaderboard.settings import get_settings

# Key names
KEY_SCORES = "leaderboard:scores"
KEY_METADATA = "users:metadata"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
