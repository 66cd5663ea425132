"""Redis connection and the JSON cache used for read-mostly lookups."""

import asyncio
import json
from typing import Any, cast

import redis
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=2,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Ping Redis without blocking the event loop.

    Returns:
        True if Redis answered, False otherwise
    """
    try:
        await asyncio.to_thread(get_redis_client().ping)
        return True
    except redis.RedisError as e:
        logger.debug("redis_ping_failed", error=str(e))
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """
    JSON cache on top of Redis.

    Keys are namespaced with ``CACHE_KEY_PREFIX`` so several deployments can
    share one Redis. Every operation fails open: an outage reads as a miss
    and a failed write is reported, never raised.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str | None = None):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client
        self.prefix = settings.cache_key_prefix if prefix is None else prefix

    def key(self, name: str) -> str:
        """Full Redis key for a cache entry."""
        return f"{self.prefix}{name}"

    def get_json(self, name: str) -> Any | None:
        """Return the cached value, or None on a miss or Redis error."""
        key = self.key(name)
        try:
            value = cast(str | None, self.redis.get(key))
        except redis.RedisError as e:
            logger.debug("cache_get_failed", key=key, error=str(e))
            return None

        if not value:
            return None

        try:
            return json.loads(value)
        except ValueError:
            # Unreadable entry; drop it so the next read repopulates
            self.delete(name)
            return None

    def set_json(self, name: str, value: Any, ttl: int | None = None) -> bool:
        """
        Serialize and store a value.

        Args:
            name: Cache entry name (prefix is added)
            value: JSON-serialisable value
            ttl: Time to live in seconds, no expiry when omitted

        Returns:
            True if stored, False on Redis error
        """
        key = self.key(name)
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
            return True
        except redis.RedisError as e:
            logger.debug("cache_set_failed", key=key, error=str(e))
            return False

    def delete(self, name: str) -> bool:
        """Drop a cache entry."""
        try:
            self.redis.delete(self.key(name))
            return True
        except redis.RedisError:
            return False
