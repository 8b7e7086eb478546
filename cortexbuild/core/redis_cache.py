import logging
from typing import Optional
import redis
from redis.exceptions import RedisError
from cortexbuild.core.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis-backed counters for API rate limiting.

    Every operation degrades to a no-op (returning None/False) when Redis is
    unreachable, so a Redis outage never blocks requests.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        """Initialize Redis cache (lazy connection unless a client is given)"""
        self._client: Optional[redis.Redis] = client
        self._connected = client is not None

    def _connect(self):
        """Connect to Redis server"""
        if self._connected:
            return

        try:
            client_kwargs = {
                'decode_responses': False,
                'socket_connect_timeout': 2,
                'socket_timeout': 2,
                'retry_on_timeout': False,
                'health_check_interval': 0,
            }
            # settings.redis_password takes precedence over a password in the URL
            if settings.redis_password:
                client_kwargs['password'] = settings.redis_password

            self._client = redis.from_url(settings.redis_url, **client_kwargs)
            self._client.ping()
            self._connected = True
            logger.info("RedisCache: Connected to Redis")
        except RedisError as e:
            error_msg = str(e)
            if 'auth' in error_msg.lower() or 'password' in error_msg.lower():
                logger.error(f"RedisCache: Authentication failed - {error_msg}. Check REDIS_PASSWORD or REDIS_URL.")
            else:
                logger.warning(f"RedisCache: Connection failed - {error_msg}")
            self._connected = False
            self._client = None

    def _available(self) -> bool:
        self._connect()
        return self._client is not None

    def get_int(self, key: str) -> Optional[int]:
        """Get integer counter value"""
        if not self._available():
            logger.warning(f"RedisCache: Cannot get key {key} - Redis not available")
            return None

        try:
            data = self._client.get(key)
            if data is None:
                return None
            try:
                return int(data.decode('utf-8'))
            except (ValueError, UnicodeDecodeError) as e:
                logger.warning(f"RedisCache: Failed to decode integer for key {key}: {e}")
                self._client.delete(key)
                return None
        except RedisError as e:
            logger.error(f"RedisCache: Error getting key {key}: {e}")
            self._connected = False
            return None

    def incr(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> Optional[int]:
        """
        Atomically increment a counter in Redis.

        Args:
            key: The key to increment
            amount: Amount to increment by (default 1)
            ttl_seconds: Expiry applied when the counter is created

        Returns:
            The new value after increment, or None if Redis unavailable
        """
        if not self._available():
            logger.warning(f"RedisCache: Cannot increment key {key} - Redis not available")
            return None

        try:
            new_value = self._client.incrby(key, amount)
            if ttl_seconds and new_value == amount:
                self._client.expire(key, ttl_seconds)
            logger.debug(f"RedisCache: Incremented {key} by {amount} to {new_value}")
            return new_value
        except RedisError as e:
            logger.error(f"RedisCache: Error incrementing key {key}: {e}")
            self._connected = False
            return None

    def delete(self, key: str):
        """Delete cache entry"""
        if not self._available():
            return

        try:
            self._client.delete(key)
            logger.debug(f"Cache deleted: {key}")
        except RedisError as e:
            logger.error(f"RedisCache: Error deleting key {key}: {e}")
            self._connected = False

    def ping(self) -> bool:
        """Check if Redis connection is alive"""
        try:
            if not self._available():
                return False
            self._client.ping()
            return True
        except RedisError:
            self._connected = False
            return False
