"""
Caching service for shop policy lookups.
Uses Redis when REDIS_URL is configured and an in-memory TTL map otherwise.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from loguru import logger

from app.core.config import settings


class CacheKeys:
    """Standardized cache keys."""

    POLICY_CONTENT = "policy_content"

    @classmethod
    def policies(cls, shop_domain: str) -> str:
        return f"{cls.POLICY_CONTENT}:{shop_domain}"


class PolicyCache:
    """Per-shop policy cache with Redis backend and in-memory fallback."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        default_ttl: Optional[int] = None,
        max_memory_items: int = 1000,
        redis_client: Optional[Any] = None,
    ):
        self.redis_url = redis_url if redis_url is not None else settings.REDIS_URL
        self.default_ttl = default_ttl or settings.POLICY_CACHE_TTL
        self.max_memory_items = max_memory_items
        self.redis_client = redis_client
        self.memory_cache: Dict[str, Any] = {}
        self.memory_cache_expiry: Dict[str, datetime] = {}
        self._redis_initialized = redis_client is not None

    async def _init_redis(self):
        """Initialize Redis connection."""
        self._redis_initialized = True
        if not self.redis_url:
            logger.debug("Redis not configured, using in-memory policy cache")
            return
        try:
            self.redis_client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            await self.redis_client.ping()
            logger.info("Redis policy cache initialized successfully")
        except (redis.RedisError, OSError) as e:
            logger.error(f"Failed to initialize Redis cache: {e}")
            self.redis_client = None

    async def ensure_redis_initialized(self):
        if not self._redis_initialized:
            await self._init_redis()

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        await self.ensure_redis_initialized()
        if self.redis_client:
            try:
                value = await self.redis_client.get(key)
                if value:
                    return json.loads(value)
            except (redis.RedisError, OSError, ValueError) as e:
                logger.error(f"Cache get error for key {key}: {e}")

        if key in self.memory_cache:
            if datetime.utcnow() > self.memory_cache_expiry[key]:
                del self.memory_cache[key]
                del self.memory_cache_expiry[key]
                return None
            return self.memory_cache[key]
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL."""
        await self.ensure_redis_initialized()
        ttl = ttl or self.default_ttl

        if self.redis_client:
            try:
                await self.redis_client.setex(key, ttl, json.dumps(value, default=str))
                return True
            except (redis.RedisError, OSError) as e:
                logger.error(f"Redis set error for key {key}: {e}")

        if len(self.memory_cache) >= self.max_memory_items:
            self._cleanup_memory_cache()
        self.memory_cache[key] = value
        self.memory_cache_expiry[key] = datetime.utcnow() + timedelta(seconds=ttl)
        return True

    async def get_policies(self, shop_domain: str) -> Optional[List[Dict[str, Any]]]:
        return await self.get(CacheKeys.policies(shop_domain))

    async def set_policies(self, shop_domain: str, policies: List[Dict[str, Any]]) -> bool:
        return await self.set(CacheKeys.policies(shop_domain), policies)

    async def close(self):
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

    def _cleanup_memory_cache(self):
        """Clean up expired entries from memory cache."""
        now = datetime.utcnow()
        expired_keys = [key for key, expiry in self.memory_cache_expiry.items() if now > expiry]
        for key in expired_keys:
            self.memory_cache.pop(key, None)
            del self.memory_cache_expiry[key]

        # Still full: evict the entry closest to expiry
        if len(self.memory_cache) >= self.max_memory_items and self.memory_cache_expiry:
            oldest = min(self.memory_cache_expiry, key=self.memory_cache_expiry.get)
            self.memory_cache.pop(oldest, None)
            del self.memory_cache_expiry[oldest]
