"""
Redis caching utilities for read-mostly data
A cache failure is always treated as a miss
"""
import json
import logging
from typing import Any, Optional

from .config import CATALOG_CACHE_TTL
from .rate_limiter import RedisUnavailable, get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def _get_client(self):
        try:
            return get_redis_client()
        except RedisUnavailable as e:
            logger.debug(f"Redis cache unavailable: {e}")
            return None

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(*keys)
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {keys}: {e}")
            return False


# Global cache instance
cache = Cache()


def catalog_key(active_only: bool) -> str:
    return f"catalog:{'active' if active_only else 'all'}"


def get_catalog_cached(active_only: bool) -> Optional[list[dict]]:
    return cache.get(catalog_key(active_only))


def set_catalog_cached(active_only: bool, programs: list[dict]) -> bool:
    return cache.set(catalog_key(active_only), programs, CATALOG_CACHE_TTL)


def invalidate_catalog_cache() -> bool:
    """Drop both catalog views after any program write"""
    return cache.delete(catalog_key(True), catalog_key(False))
