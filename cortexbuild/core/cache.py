import logging
from datetime import datetime
from typing import Optional
from cortexbuild.core.redis_cache import RedisCache

logger = logging.getLogger(__name__)


# Global cache instance
_cache_instance: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get global Redis cache instance"""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = RedisCache()
    return _cache_instance


def set_cache(cache: Optional[RedisCache]):
    """Replace the global cache instance (for testing)"""
    global _cache_instance
    _cache_instance = cache


def minute_window_key(scope: str, identity: str, now: Optional[datetime] = None) -> str:
    """Counter key for the current UTC minute, e.g. rate_limit:user:u1:c1:2025-01-15T10:04"""
    now = now or datetime.utcnow()
    return f"rate_limit:{scope}:{identity}:{now.strftime('%Y-%m-%dT%H:%M')}"
