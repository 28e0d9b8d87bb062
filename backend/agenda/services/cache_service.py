"""
Redis caching service for per-event session listings and capacity feeds.

CACHING STRATEGY
================

What we cache:
  - Session listing responses per event
  - Live capacity snapshots per event (dashboards poll these)
  - Key pattern: "agenda:{kind}:event={event_id}"

Why:
  - Dashboards poll capacity far more often than anyone RSVPs
  - The capacity feed is allowed to be eventually consistent

Invalidation strategy:
  - Any admission write (session created/edited, rsvp, cancel) deletes
    every key of the affected event
  - Short TTL as safety net (REDIS_CACHE_TTL)

What we never cache:
  - Anything the admission controller reads to make a decision. Counters
    and waitlist positions always come from the database.

Redis is optional: when disabled or unreachable every call is a no-op
and readers fall through to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from agenda.core.config import get_settings
from agenda.core.logging import get_logger
from agenda.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

SESSIONS_KIND = "sessions"
CAPACITY_KIND = "capacity"
_KINDS = (SESSIONS_KIND, CAPACITY_KIND)

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
        except Exception as e:
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


def make_key(kind: str, event_id: str) -> str:
    return f"agenda:{kind}:event={event_id}"


async def get_cached(kind: str, event_id: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_key(kind, event_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached(kind: str, event_id: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = make_key(kind, event_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event(event_id: str) -> None:
    """Drop every cached view of one event after an admission write."""
    client = await get_redis()
    if not client:
        return

    keys = [make_key(kind, event_id) for kind in _KINDS]
    try:
        deleted = await client.delete(*keys)
        logger.debug("cache_invalidated", event_id=event_id, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", event_id=event_id, error=str(e))


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
