"""At most one in-flight generation per repository."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class SingleFlight:
    """Per-key asyncio locks.

    Holders of the same key run one after another; different keys never
    block each other. Locks are dropped once nobody holds or awaits them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_busy(self, key: str) -> bool:
        """Whether a holder or waiter exists for key."""
        return key in self._users

    def __len__(self) -> int:
        return len(self._locks)
