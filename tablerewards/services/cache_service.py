"""
Redis caching service for restaurant listings.

CACHING STRATEGY
================

What we cache:
  - Restaurant directory pages (JSON-serialized)
  - Cache key pattern:
    "restaurants:list:page={page}&size={size}&cuisine={cuisine}&location={location}"

Invalidation strategy:
  - On restaurant creation or update: delete all restaurant list keys
  - TTL-based expiry as safety net

  All list keys start with "restaurants:list:" so we can SCAN and delete them.

What we never cache:
  - Availability and slot occupancy. Admission and the available_times
    hint must read live covers; a stale count means overbooking.

Redis is optional. When it is disabled or unreachable every call degrades
to a miss and the directory is served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from tablerewards.core.config import get_settings
from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "restaurants:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_list_key(page: int, page_size: int, cuisine: Optional[str], location: Optional[str]) -> str:
    cuisine = (cuisine or "").lower()
    location = (location or "").lower()
    return f"{LIST_KEY_PREFIX}page={page}&size={page_size}&cuisine={cuisine}&location={location}"


async def get_cached_restaurants(
    page: int,
    page_size: int,
    cuisine: Optional[str] = None,
    location: Optional[str] = None,
) -> Optional[dict]:
    """Retrieve a cached restaurant list response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_list_key(page, page_size, cuisine, location)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except (RedisError, ValueError) as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_restaurants(
    page: int,
    page_size: int,
    cuisine: Optional[str],
    location: Optional[str],
    data: dict,
) -> None:
    """Cache a restaurant list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_list_key(page, page_size, cuisine, location)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_restaurant_cache() -> None:
    """
    Invalidate all cached restaurant listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except RedisError as e:
        return {"status": "error", "error": str(e)}
