"""Redis store for the cache-aside layer.

Handles:
- Caching with TTL policies
- Key naming for ad entries

TTL policies:
- Single ad (ad:<id>): 10 minutes
- Default landing page (ads:default_page): 10 minutes

Redis errors are raised as CacheError; whether a failure matters is the
caller's decision.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.settings import Settings
from app.stores.base import CacheError, KeyValueCache

# TTL constants (in seconds)
TTL_AD_CACHE = 600  # 10 minutes

# Key prefixes
PREFIX_AD = "ad:"
KEY_DEFAULT_PAGE = "ads:default_page"

logger = logging.getLogger("uvicorn.error")


def ad_cache_key(ad_id: int) -> str:
    """Cache key for a single ad."""
    return f"{PREFIX_AD}{ad_id}"


def create_redis_client(settings: Settings) -> redis.Redis:
    """Build a Redis client from settings (no network I/O).

    REDIS_PASSWORD / REDIS_DB take precedence over values in REDIS_URL.
    """
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
    )
    # from_url lets the URL win over keyword args; connections are created
    # lazily from these kwargs, so apply the overrides here
    overrides: dict[str, object] = {}
    if settings.redis_password:
        overrides["password"] = settings.redis_password
    if settings.redis_db is not None:
        overrides["db"] = settings.redis_db
    client.connection_pool.connection_kwargs.update(overrides)
    return client


class RedisCache(KeyValueCache):
    """KeyValueCache backed by a Redis client."""

    def __init__(self, client: redis.Redis):
        self._client = client

    async def ping(self) -> None:
        """Validate connectivity early (especially for `rediss://` in production)."""
        try:
            await self._client.ping()
        except RedisError as e:
            raise CacheError("redis ping failed") from e
        logger.info("Redis connected")

    async def get(self, key: str) -> str | None:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found.
        """
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheError(f"cache get failed for {key}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Set value in cache with TTL.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds.
        """
        try:
            await self._client.setex(key, ttl, value)
        except RedisError as e:
            raise CacheError(f"cache set failed for {key}") from e

    async def delete(self, key: str) -> None:
        """Delete value from cache.

        Args:
            key: Cache key.
        """
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise CacheError(f"cache delete failed for {key}") from e

    async def close(self) -> None:
        """Close Redis connection."""
        await self._client.aclose()
