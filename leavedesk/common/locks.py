"""Per-key asyncio mutual exclusion.

Used to serialize read → validate → reserve → persist for one employee
inside a single worker process. Cross-process safety comes from the row
lock taken in the same critical section (see ``EmployeeDirectory.lock``).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """A family of ``asyncio.Lock`` objects addressed by key.

    Locks are created on first use and dropped once no task holds or waits
    on them, so the registry does not grow with the number of employees.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __contains__(self, key: Hashable) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide registry for leave submissions, keyed by employee id
submission_locks = KeyedLock()
