"""
Critical sections for the queue core.

Two callers must never both observe "no pending payment" for one customer,
and two admissions must never compute the same next position. Each such
operation holds a named lock from its first read until after commit:

    customer:{id}   payment submission
    payment:{id}    payment decision
    queue:active    any change to queue positions or entry status

Locks are always taken in that order. Redis (SET NX EX) is used when
connected so several API workers share the same locks; otherwise an
in-process asyncio.Lock per resource is used.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from ridequeue.core.cache import CacheService, get_cache

logger = logging.getLogger(__name__)

QUEUE_RESOURCE = "queue:active"


def customer_resource(customer_id) -> str:
    return f"customer:{customer_id}"


def payment_resource(payment_id) -> str:
    return f"payment:{payment_id}"


class DistributedLockManager:
    """
    Named locks backed by Redis, with in-memory fallback.
    """

    DEFAULT_LOCK_TTL = 30

    DEFAULT_ACQUIRE_TIMEOUT = 10

    RETRY_INTERVAL = 0.05

    def __init__(self, cache: Optional[CacheService] = None, acquire_timeout: float = DEFAULT_ACQUIRE_TIMEOUT):
        self._cache = cache
        self.acquire_timeout = acquire_timeout
        self._fallback_locks: dict[str, asyncio.Lock] = {}
        self._fallback_users: dict[str, int] = {}  # holders + waiters per resource
        self._active_locks: dict[str, str] = {}  # resource -> lock_id

    async def _get_cache(self) -> CacheService:
        if self._cache is None:
            self._cache = await get_cache()
        return self._cache

    def _get_fallback_lock(self, resource: str) -> asyncio.Lock:
        lock = self._fallback_locks.get(resource)
        if lock is None:
            lock = asyncio.Lock()
            self._fallback_locks[resource] = lock
        return lock

    def _drop_fallback_user(self, resource: str) -> None:
        remaining = self._fallback_users.get(resource, 0) - 1
        if remaining > 0:
            self._fallback_users[resource] = remaining
            return
        # No holders or waiters left.
        self._fallback_users.pop(resource, None)
        self._fallback_locks.pop(resource, None)

    async def acquire(
        self,
        resource: str,
        ttl: int = DEFAULT_LOCK_TTL,
        timeout: Optional[float] = None,
        lock_id: Optional[str] = None
    ) -> tuple[bool, str]:
        """
        Acquire the lock for a resource.

        Returns:
            Tuple of (acquired, lock_id)
        """
        if lock_id is None:
            lock_id = str(uuid.uuid4())
        if timeout is None:
            timeout = self.acquire_timeout

        cache = await self._get_cache()

        if cache.connected:
            loop = asyncio.get_running_loop()
            start_time = loop.time()
            while True:
                try:
                    acquired = await cache.acquire_lock(resource, lock_id, ttl)
                except Exception as e:
                    logger.error(f"Redis lock acquisition failed for {resource}: {e}")
                    raise

                if acquired:
                    self._active_locks[resource] = lock_id
                    logger.debug(f"Acquired distributed lock {resource} ({lock_id[:8]})")
                    return True, lock_id

                elapsed = loop.time() - start_time
                if elapsed >= timeout:
                    logger.warning(f"Timeout waiting for distributed lock on {resource} after {elapsed:.2f}s")
                    return False, lock_id

                await asyncio.sleep(self.RETRY_INTERVAL)

        fallback_lock = self._get_fallback_lock(resource)
        self._fallback_users[resource] = self._fallback_users.get(resource, 0) + 1
        try:
            await asyncio.wait_for(fallback_lock.acquire(), timeout=timeout)
        except asyncio.CancelledError:
            self._drop_fallback_user(resource)
            raise
        except asyncio.TimeoutError:
            self._drop_fallback_user(resource)
            logger.warning(f"Timeout waiting for lock on {resource}")
            return False, lock_id

        self._active_locks[resource] = lock_id
        return True, lock_id

    async def release(self, resource: str, lock_id: str) -> bool:
        cache = await self._get_cache()

        if self._active_locks.get(resource) == lock_id:
            del self._active_locks[resource]

        if cache.connected:
            released = await cache.release_lock(resource, lock_id)
            if not released:
                logger.warning(f"Failed to release distributed lock for {resource} (may have expired)")
            return released

        lock = self._fallback_locks.get(resource)
        if lock is not None and lock.locked():
            lock.release()
            self._drop_fallback_user(resource)
            return True
        return False

    @asynccontextmanager
    async def lock(
        self,
        resource: str,
        ttl: int = DEFAULT_LOCK_TTL,
        timeout: Optional[float] = None
    ):
        """
        Hold the lock for the duration of the block.

        Usage:
            async with lock_manager.lock(QUEUE_RESOURCE):
                # read, mutate, commit

        Raises:
            asyncio.TimeoutError: If the lock cannot be acquired within timeout
        """
        acquired, lock_id = await self.acquire(resource, ttl, timeout)

        if not acquired:
            raise asyncio.TimeoutError(f"Could not acquire lock for {resource}")

        try:
            yield lock_id
        finally:
            await self.release(resource, lock_id)

    def get_active_locks_count(self) -> int:
        return len(self._active_locks)

    def get_fallback_locks_count(self) -> int:
        return len(self._fallback_locks)


_lock_manager: Optional[DistributedLockManager] = None


def get_lock_manager() -> DistributedLockManager:
    """Get the process-wide lock manager."""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = DistributedLockManager()
    return _lock_manager
