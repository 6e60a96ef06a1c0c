"""
Redis connection used for cross-worker coordination.

Only the lock primitives live here: the queue core keeps no cached read
models (every queue listing is computed fresh from the store). When
REDIS_URL is not configured, or Redis is unreachable, the service stays
disconnected and DistributedLockManager falls back to in-process locks.
"""
import logging
from typing import Optional

import redis.asyncio as redis

from ridequeue.core.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    PREFIX_DISTRIBUTED_LOCK = "ridequeue:lock"

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url
        self._redis: Optional[redis.Redis] = None
        self._connected = False
        self._connection_attempted = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """
        Initialize Redis connection.
        Returns True if connected, False otherwise.
        """
        if self._connection_attempted:
            return self._connected

        self._connection_attempted = True
        if not self.redis_url:
            logger.info("REDIS_URL not configured; using in-process locks.")
            return False

        try:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            await self._redis.ping()
            self._connected = True
            logger.info(f"Connected to Redis at {self.redis_url}")
            return True
        except Exception as e:
            logger.warning(f"Redis connection failed: {e}. Falling back to in-process locks.")
            self._connected = False
            self._redis = None
            return False

    async def close(self):
        if self._redis:
            await self._redis.close()
            self._connected = False

    def _make_key(self, prefix: str, *parts: str) -> str:
        return f"{prefix}:{':'.join(str(p) for p in parts)}"

    async def acquire_lock(
        self,
        resource: str,
        lock_id: str,
        ttl_seconds: int = 30
    ) -> bool:
        """
        Try once to take the lock for `resource` (SET NX EX).

        Returns True if the lock is now held by `lock_id`.
        """
        key = self._make_key(self.PREFIX_DISTRIBUTED_LOCK, resource)
        result = await self._redis.set(key, lock_id, nx=True, ex=ttl_seconds)
        return result is not None

    async def release_lock(self, resource: str, lock_id: str) -> bool:
        """
        Release the lock only if `lock_id` still owns it.
        """
        key = self._make_key(self.PREFIX_DISTRIBUTED_LOCK, resource)
        lua_script = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        try:
            result = await self._redis.eval(lua_script, 1, key, lock_id)
            return result == 1
        except Exception as e:
            logger.warning(f"Lock release failed for {resource}: {e}")
            return False


# Global cache instance
_cache_instance: Optional[CacheService] = None


async def get_cache() -> CacheService:
    """Get the global cache instance, initializing if needed."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        await _cache_instance.connect()
    return _cache_instance


async def close_cache():
    global _cache_instance
    if _cache_instance:
        await _cache_instance.close()
        _cache_instance = None
