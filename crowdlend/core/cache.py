"""
Read-through cache over Redis.

The cache is advisory: every Redis failure is logged and treated as a miss,
so a stale or unavailable cache never affects correctness.
"""
import enum
import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from crowdlend.core.config import settings

logger = logging.getLogger(__name__)


class CacheTTL(int, enum.Enum):
    """TTL tiers in seconds"""
    SHORT = settings.CACHE_TTL_SHORT
    MEDIUM = settings.CACHE_TTL_MEDIUM
    LONG = settings.CACHE_TTL_LONG


class CacheKeys:
    """Key layout, one namespace per entity type"""

    CAMPAIGN_LISTS = "campaigns:*"

    @staticmethod
    def campaign(campaign_id: int) -> str:
        return f"campaign:{campaign_id}"

    @staticmethod
    def campaigns(page: int, page_size: int, filters: str = "") -> str:
        return f"campaigns:list:{filters}:{page}:{page_size}"

    @staticmethod
    def loan(loan_id: int) -> str:
        return f"loan:{loan_id}"


class Cache:
    """get/set/delete/delete_pattern over an injected Redis client"""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[Any]:
        try:
            data = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Cache get failed for {key}: {str(e)}")
            return None
        return json.loads(data) if data else None

    async def set(self, key: str, value: Any, ttl: int = CacheTTL.MEDIUM) -> None:
        try:
            await self.redis.set(key, json.dumps(value, default=str), ex=int(ttl))
        except RedisError as e:
            logger.warning(f"Cache set failed for {key}: {str(e)}")

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {str(e)}")

    async def delete_pattern(self, pattern: str) -> None:
        try:
            keys = await self.redis.keys(pattern)
            if keys:
                await self.redis.delete(*keys)
        except RedisError as e:
            logger.warning(f"Cache delete_pattern failed for {pattern}: {str(e)}")


# Redis connection pool
redis_pool = None


async def get_redis() -> aioredis.Redis:
    """Get Redis connection"""
    global redis_pool
    if redis_pool is None:
        redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=10
        )
    return redis_pool


async def close_redis():
    """Close Redis connection"""
    global redis_pool
    if redis_pool:
        await redis_pool.aclose()
        redis_pool = None
