"""Per-target serialization of deployments and rollbacks."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sitedeploy.utils.logging import get_logger


class TargetLocks:
    """One asyncio lock per site name.

    Attempts on the same site queue behind each other; different sites
    proceed concurrently. A lock is dropped once nobody holds or waits
    for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}
        self.logger = get_logger("locks")

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, site_name: str) -> bool:
        lock = self._locks.get(site_name)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, site_name: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(site_name, asyncio.Lock())
        if lock.locked():
            self.logger.info("locks.waiting", site=site_name)
        self._users[site_name] = self._users.get(site_name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[site_name] -= 1
            if self._users[site_name] == 0:
                del self._users[site_name]
                del self._locks[site_name]
