"""
Redis cache for derived BMI data.

Only read-heavy aggregates (statistics) are cached. Every helper degrades to
a no-op when REDIS_URL is empty or Redis cannot be reached, so callers never
need to handle cache failures.
"""
import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError

from core.config import settings

logger = logging.getLogger(__name__)

STATS_PREFIX = "stats"

_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Shared Redis client, or None when caching is disabled or Redis is down."""
    global _client

    if not settings.REDIS_URL:
        return None
    if _client is not None:
        return _client

    candidate = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    try:
        candidate.ping()
    except RedisError as e:
        logger.warning(f"Redis unavailable at {settings.REDIS_URL}, caching disabled: {e}")
        return None

    _client = candidate
    logger.info("Connected to Redis")
    return _client


def cache_key(prefix: str, *parts, **named) -> str:
    """Join a prefix with positional and keyword parts, dropping None values."""
    segments = [prefix]
    segments.extend(str(part) for part in parts if part is not None)
    segments.extend(f"{name}:{value}" for name, value in sorted(named.items()) if value is not None)
    return ":".join(segments)


def get_cache(key: str) -> Optional[Any]:
    client = get_redis_client()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return json.loads(raw) if raw else None


def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    client = get_redis_client()
    if client is None:
        return False
    try:
        client.setex(key, ttl or settings.CACHE_TTL_DEFAULT, json.dumps(value, default=str))
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def invalidate_pattern(pattern: str) -> int:
    """Delete every key matching a glob pattern; returns the number removed."""
    client = get_redis_client()
    if client is None:
        return 0
    try:
        keys = list(client.scan_iter(match=pattern))
        return client.delete(*keys) if keys else 0
    except RedisError as e:
        logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return 0


def cached(prefix: str, ttl: Optional[int] = None):
    """
    Cache the JSON-serializable result of a function taking a session first.

    The session argument is not part of the key; remaining arguments are.

        @cached("stats", ttl=60)
        def build_statistics(db): ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(db, *args, **kwargs):
            key = cache_key(prefix, *args, **kwargs)
            hit = get_cache(key)
            if hit is not None:
                logger.debug(f"Cache hit: {key}")
                return hit

            result = func(db, *args, **kwargs)
            set_cache(key, result, ttl)
            return result
        return wrapper
    return decorator


def invalidate_records_cache() -> int:
    """Drop aggregates derived from stored BMI records after any write."""
    removed = invalidate_pattern(f"{STATS_PREFIX}*")
    if removed:
        logger.info(f"Invalidated {removed} cached statistics entries")
    return removed
