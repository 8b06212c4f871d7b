"""Redis client and the key-value cache store built on it."""

import json
from typing import Any

import redis.asyncio as redis
import structlog

from clicktrail.core.config import get_settings

settings = get_settings()
logger = structlog.get_logger()

# Global Redis client instance
_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get the Redis client instance, creating it if necessary."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info("Redis client initialized", url=settings.redis_url)
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


class RedisCacheStore:
    """JSON key-value store with per-key TTL.

    Keys are opaque strings. Expiry is left to Redis itself.
    Errors surface as ``redis.RedisError``; callers decide whether they matter.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    async def get(self, key: str) -> dict[str, Any] | None:
        data = await self._client.get(key)
        if data is None:
            return None
        return json.loads(data)

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None:
        await self._client.setex(key, ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def ping(self) -> bool:
        return bool(await self._client.ping())


async def get_cache_store() -> RedisCacheStore:
    """Dependency that provides the Redis-backed cache store."""
    return RedisCacheStore(await get_redis())
