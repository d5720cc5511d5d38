import json
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError
from structlog import get_logger

from marketplace.config import settings

logger = get_logger()

PROPERTIES_CACHE_KEY = "properties:all"
CACHE_KEY_PATTERN = "properties:*"


_redis: Optional[Redis] = None


def get_redis() -> Redis:
    """Process-wide client; its connection pool is shared by every cache call."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get_json(key: str) -> Optional[Any]:
    """Return the decoded value stored at ``key``, or None on a miss.

    Redis being unreachable or holding a corrupt value is treated as a miss.
    """
    try:
        cached = await get_redis().get(key)
    except RedisError as e:
        logger.warning("Cache read failed", cache_key=key, error=str(e))
        return None
    if cached is None:
        logger.info("Cache miss", cache_key=key)
        return None
    try:
        value = json.loads(cached)
    except ValueError:
        logger.warning("Cache value corrupt; ignoring", cache_key=key)
        return None
    logger.info("Cache hit", cache_key=key)
    return value


async def cache_set_json(key: str, value: Any, ttl: Optional[int] = None) -> None:
    try:
        await get_redis().setex(key, ttl or settings.CACHE_TTL_SECONDS, json.dumps(value, default=str))
    except RedisError as e:
        logger.warning("Cache write failed", cache_key=key, error=str(e))


async def invalidate_properties_cache() -> int:
    try:
        redis = get_redis()
        keys = await redis.keys(CACHE_KEY_PATTERN)
        if not keys:
            return 0
        deleted = await redis.delete(*keys)
        logger.info("Property cache invalidated", deleted_keys=deleted)
        return deleted
    except RedisError as e:
        logger.warning("Cache invalidation failed", error=str(e))
        return 0
