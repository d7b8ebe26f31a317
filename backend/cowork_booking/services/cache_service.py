"""
Redis caching for area capacity configuration.

CACHING STRATEGY
================

What we cache:
  - Area configuration (capacity, admission flags, owning space) as JSON
  - Cache key pattern: "areas:config:{area_id}"

Why:
  - Every booking request reads it, and it changes rarely
  - Bookings snapshot max_capacity at creation, so a briefly stale value only
    affects new requests, never the reconciliation of existing ones

Invalidation strategy:
  - TTL only (REDIS_CACHE_TTL). Area edits happen in listing management,
    which is not required to be atomic with in-flight bookings.

Failure mode:
  - Fail open. If Redis is disabled or erroring, callers fall back to the
    database. Redis is never authoritative for anything here.
"""

import json
from typing import Optional

import redis.asyncio as redis
from cowork_booking.core.config import get_settings
from cowork_booking.core.logging import get_logger
from cowork_booking.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client
    settings = get_settings()

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
        except Exception as e:
            redis_connection_errors.inc()
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


def _make_area_key(area_id: str) -> str:
    return f"areas:config:{area_id}"


async def get_cached_area_config(area_id: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_area_key(area_id)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", "hit")
            return json.loads(data)
        record_cache_operation("get", "miss")
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_area_config(area_id: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    settings = get_settings()
    key = _make_area_key(area_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data))
        record_cache_operation("set", "ok")
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
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
    except Exception as e:
        return {"status": "error", "error": str(e)}
