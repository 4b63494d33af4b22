"""
PhotoSharing Backend — In-Process Cache Service
=================================================

What:  Get-or-compute cache used by CachedRepository.
How:   An OrderedDict of key → (value, stored_at) in least-recently-used
       order, with one asyncio.Lock per key while a miss is being computed,
       so concurrent misses for the same key run the factory once.
       Entries optionally expire after `expiration` seconds; without an
       expiration they live until evicted, clear() or a process restart.
       Every insert sweeps expired entries and evicts the least recently
       used ones beyond `max_entries`, so client-chosen keys (leaderboard
       sizes) cannot grow the map without bound.
Who:   One MemoryCacheService is built in the application lifespan and
       injected into CachedRepository. Tests build their own instances.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService(ABC):
    """Keyed get-or-insert cache."""

    @abstractmethod
    async def get_or_insert(self, factory: Callable[[], Awaitable[T]], key: str) -> T:
        """Return the cached value for `key`, computing and storing it on a miss."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class MemoryCacheService(CacheService):
    """
    Process-local CacheService.

    Args:
        expiration: Lifetime of an entry in seconds; None disables expiry.
        max_entries: Upper bound on stored entries; the least recently used
                     entry is evicted first.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        expiration: Optional[float] = None,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.expiration = expiration
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        # key → (lock, number of callers using it)
        self._locks: Dict[str, Tuple[asyncio.Lock, int]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending_keys(self) -> int:
        """Number of keys with a miss currently being computed or awaited."""
        return len(self._locks)

    def _is_fresh(self, stored_at: float) -> bool:
        return self.expiration is None or self._clock() - stored_at < self.expiration

    def contains(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if not self._is_fresh(entry[1]):
            del self._entries[key]
            return False
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._locks.clear()

    def _get(self, key: str) -> Any:
        self._entries.move_to_end(key)
        return self._entries[key][0]

    def _store(self, key: str, value: Any) -> None:
        self._sweep_expired()
        self._entries[key] = (value, self._clock())
        self._entries.move_to_end(key)

        evicted = 0
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug("Evicted %d least recently used cache entries", evicted)

    def _sweep_expired(self) -> None:
        if self.expiration is None:
            return
        expired = [key for key, (_, stored_at) in self._entries.items() if not self._is_fresh(stored_at)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))

    def _acquire_lock(self, key: str) -> asyncio.Lock:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        return lock

    def _release_lock(self, key: str) -> None:
        held = self._locks.get(key)
        if held is None:
            return
        lock, users = held
        if users <= 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, users - 1)

    async def get_or_insert(self, factory: Callable[[], Awaitable[T]], key: str) -> T:
        if self.contains(key):
            logger.debug("Cache hit: %s", key)
            return self._get(key)

        lock = self._acquire_lock(key)
        try:
            async with lock:
                # Another waiter may have filled the entry while we queued.
                if self.contains(key):
                    logger.debug("Cache hit after wait: %s", key)
                    return self._get(key)

                logger.debug("Cache miss: %s", key)
                value = await factory()
                self._store(key, value)
                return value
        finally:
            self._release_lock(key)
