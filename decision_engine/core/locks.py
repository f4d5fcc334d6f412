"""
Per-key mutual exclusion for session mutations.
"""
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """
    One asyncio.Lock per key, created on demand.

    Locks are held weakly: a lock disappears once nobody holds or waits
    on it, so the registry does not grow with every session ever seen.

    Usage:
        locks = KeyedLock()
        async with locks.hold(session_id):
            ...
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Acquire the lock for `key` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def size(self) -> int:
        """Number of live locks."""
        return len(self._locks)
