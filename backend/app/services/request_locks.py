"""
Per-request write serialization.

Assignment, reassignment and status changes on one transport request run
one at a time inside this process. Across processes the services also use a
compare-and-set UPDATE, so this registry only narrows the race window and
keeps a single connection from interleaving two transactions.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple


class RequestLockRegistry:
    """
    Keyed asyncio locks, one per transport request id.

    Entries are reference counted and dropped when the last holder or
    waiter leaves, so the registry does not grow with the request table.
    """

    def __init__(self):
        self._locks: Dict[int, Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, request_id: int) -> AsyncIterator[None]:
        lock, users = self._locks.get(request_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[request_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[request_id]
            if users <= 1:
                del self._locks[request_id]
            else:
                self._locks[request_id] = (lock, users - 1)

    def __len__(self) -> int:
        return len(self._locks)


# Global instance shared by the lifecycle and bidding services
request_locks = RequestLockRegistry()
