from __future__ import annotations

import asyncio
import weakref


class KeyedLocks:
    """
    One asyncio.Lock per key, created on demand.

    Entries are weakly held, so a lock disappears once no coroutine is holding
    or waiting on it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


# Serializes turns per sessionId within this process.
session_locks = KeyedLocks()
