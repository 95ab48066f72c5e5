"""
Process-wide per-program locks.

Streak updates and plan parent resolution are read-modify-write
sequences. Every engine built in the process must serialize them on the
same lock, so the registry is created once and injected, like the dedup
cache.
"""

import asyncio
import weakref
from typing import Hashable


class ProgramLockRegistry:
    """
    Lazily created ``asyncio.Lock`` per key.

    Locks are held weakly and disappear once no coroutine holds or waits
    on them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, scope: str, program_id: str) -> asyncio.Lock:
        """Lock for one concern (``scope``) of one program."""
        key = (scope, program_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
