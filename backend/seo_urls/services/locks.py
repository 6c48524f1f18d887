"""In-process per-key locks for SEO URL writes.

Serializes concurrent batches touching the same (route, entity, channel,
language) keys within one process. Cross-process serialization is done by
the store with PostgreSQL advisory locks.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager


class KeyLockRegistry:
    """Hands out one ``asyncio.Lock`` per key, acquired in sorted order."""

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, keys: Iterable[str]) -> AsyncIterator[None]:
        # Sorted acquisition keeps overlapping batches from deadlocking
        locks = [self._lock_for(key) for key in sorted(set(keys))]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)


_key_locks: KeyLockRegistry | None = None


def get_key_lock_registry() -> KeyLockRegistry:
    """Get or create the process-wide lock registry."""
    global _key_locks
    if _key_locks is None:
        _key_locks = KeyLockRegistry()
    return _key_locks
