"""Redis store for caching and distributed locks.

Handles:
- Caching with TTL policies
- Distributed locks (one alert sweep at a time)

TTL policies:
- Trust score read surface: ~5 minutes, invalidated on every recalculation
- Sweep lock: ~5 minutes (longer than a sweep ever takes)
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from umoja.settings import get_settings

# TTL constants (in seconds)
TTL_TRUST_SCORE = 300  # 5 minutes
TTL_SWEEP_LOCK = 300  # 5 minutes

# Key prefixes
PREFIX_TRUST_SCORE = "trust:"
PREFIX_LOCK = "lock:"

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


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(key: str) -> None:
    """Delete value from cache.

    Args:
        key: Cache key.
    """
    await _get_redis().delete(key)


async def cache_get_json(key: str) -> dict[str, Any] | None:
    """Get JSON value from cache."""
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: dict[str, Any], ttl: int) -> None:
    """Set JSON value in cache."""
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Trust score cache (read surface)
# ============================================================


async def get_trust_score_cache(farmer_id: int) -> dict[str, Any] | None:
    """Get cached trust score payload for a farmer."""
    return await cache_get_json(f"{PREFIX_TRUST_SCORE}{farmer_id}")


async def set_trust_score_cache(farmer_id: int, payload: dict[str, Any], ttl: int = TTL_TRUST_SCORE) -> None:
    """Cache trust score payload for a farmer."""
    await cache_set_json(f"{PREFIX_TRUST_SCORE}{farmer_id}", payload, ttl)


async def invalidate_trust_score_cache(farmer_id: int) -> None:
    """Drop the cached trust score so the next read sees the new record."""
    await cache_delete(f"{PREFIX_TRUST_SCORE}{farmer_id}")


# ============================================================
# Distributed locks
# ============================================================


async def acquire_lock(key: str, ttl: int = TTL_SWEEP_LOCK) -> bool:
    """Acquire a distributed lock.

    Args:
        key: Lock key (e.g., "price-alert-sweep").
        ttl: Lock timeout in seconds.

    Returns:
        True if lock acquired, False if already locked.
    """
    lock_key = f"{PREFIX_LOCK}{key}"
    # SET NX (only if not exists) with TTL
    result = await _get_redis().set(lock_key, "1", nx=True, ex=ttl)
    return result is not None


async def release_lock(key: str) -> None:
    """Release a distributed lock."""
    await cache_delete(f"{PREFIX_LOCK}{key}")
