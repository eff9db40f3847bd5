"""
Redis client for caching
Constructed once per process and injected; every backend error degrades to a miss
"""
import json
import logging
from typing import Optional, Any

from redis import asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from agentledger.config import Settings

logger = logging.getLogger(__name__)

# Errors that mean "cache unavailable", never fatal to a read
CACHE_ERRORS = (RedisError, OSError, ValueError)


class RedisClient:
    """Async Redis client with caching helpers"""

    def __init__(self, redis_url: str, timeout: float = 5.0, client: Optional[Redis] = None):
        self.redis_url = redis_url
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisClient":
        return cls(settings.redis_url, timeout=settings.redis_timeout)

    def _safe_url(self) -> str:
        return self.redis_url.split('@')[-1] if '@' in self.redis_url else self.redis_url

    async def get_client(self) -> Optional[Redis]:
        """Get or create the Redis connection, None while the backend is down"""
        if self._client is None:
            client = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.timeout,
                socket_timeout=self.timeout,
                socket_keepalive=True,
                health_check_interval=30
            )
            try:
                # Test connection
                await client.ping()
            except CACHE_ERRORS as e:
                logger.warning(f"⚠️ Redis connection failed: {e}. Cache disabled.")
                await client.aclose()
                return None

            self._client = client
            logger.info(f"✅ Redis connected: {self._safe_url()}")

        return self._client

    async def get_cached(self, key: str) -> Optional[Any]:
        """
        Get cached value from Redis
        Returns parsed JSON or None if cache miss/error
        """
        client = await self.get_client()
        if not client:
            return None

        try:
            cached = await client.get(key)
            if cached:
                logger.info(f"🎯 Cache HIT: {key}")
                return json.loads(cached)
            logger.info(f"❌ Cache MISS: {key}")
            return None
        except CACHE_ERRORS as e:
            logger.warning(f"⚠️ Cache get failed: {e}")
            return None

    async def set_cached_indexed(self, key: str, value: Any, index_key: str, ttl_seconds: int) -> bool:
        """
        Store value in Redis with TTL and register its key in an index set
        Value and index membership are written in one MULTI/EXEC.
        The index lives at least as long as its longest-lived member.
        """
        client = await self.get_client()
        if not client:
            return False

        try:
            # Handle Pydantic models
            if hasattr(value, 'model_dump'):
                value = value.model_dump(mode="json")

            serialized = json.dumps(value, default=str)
            async with client.pipeline(transaction=True) as pipe:
                pipe.sadd(index_key, key)
                pipe.setex(key, ttl_seconds, serialized)
                pipe.ttl(index_key)
                _, _, remaining = await pipe.execute()

            if remaining < ttl_seconds:
                await client.expire(index_key, ttl_seconds)
            logger.info(f"💾 Cache SET: {key} (TTL: {ttl_seconds}s)")
            return True
        except (CACHE_ERRORS + (TypeError,)) as e:
            logger.warning(f"⚠️ Cache set failed: {e}")
            return False

    async def delete_index(self, index_key: str) -> bool:
        """
        Drop the index and every key it lists
        The index is read and dropped in one MULTI/EXEC; a key indexed after
        that lands in a fresh index and is caught by the next call.
        """
        client = await self.get_client()
        if not client:
            return False

        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.smembers(index_key)
                pipe.delete(index_key)
                members, _ = await pipe.execute()

            keys = set(members)
            if keys:
                await client.delete(*keys)
            logger.info(f"🗑️ Cache INVALIDATE: {index_key} ({len(keys)} keys)")
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"⚠️ Cache invalidation failed: {e}")
            return False

    async def ping(self) -> bool:
        client = await self.get_client()
        if not client:
            return False
        try:
            return bool(await client.ping())
        except CACHE_ERRORS:
            return False

    async def close(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")
