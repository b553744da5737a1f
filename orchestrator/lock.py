"""Single-flight guard for refresh runs."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from storage import ContentCacheStore


logger = logging.getLogger(__name__)


class RefreshLock(ABC):
    """Advisory, best-effort mutual exclusion between refresh runs."""

    @abstractmethod
    async def try_acquire(self) -> bool:
        pass

    @abstractmethod
    async def release(self) -> None:
        pass

    def hold(self) -> "LockHold":
        return LockHold(self)


class LockHold:
    """
    ``async with lock.hold() as acquired:`` acquires on entry and, when it
    was acquired, releases on every exit path.
    """

    def __init__(self, lock: RefreshLock) -> None:
        self.lock = lock
        self.acquired = False

    async def __aenter__(self) -> bool:
        self.acquired = await self.lock.try_acquire()
        return self.acquired

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        if self.acquired:
            try:
                await self.lock.release()
            except Exception as release_exc:
                logger.error(f"Failed to release refresh lock: {release_exc}")
            self.acquired = False
        return None


class InProcessRefreshLock(RefreshLock):
    """Lock held inside this event loop only."""

    def __init__(self) -> None:
        self._held = False
        self._guard = asyncio.Lock()

    @property
    def held(self) -> bool:
        return self._held

    async def try_acquire(self) -> bool:
        async with self._guard:
            if self._held:
                return False
            self._held = True
            return True

    async def release(self) -> None:
        async with self._guard:
            self._held = False


class CacheStoreRefreshLock(RefreshLock):
    """
    Delegates to the cache store's try_refresh_lock / release_refresh_lock RPCs.

    If the lock RPC itself errors the run proceeds (fail open).
    """

    def __init__(self, store: ContentCacheStore) -> None:
        self.store = store

    async def try_acquire(self) -> bool:
        try:
            return bool(await self.store.try_refresh_lock())
        except Exception as exc:
            logger.warning(f"Refresh lock unavailable, proceeding without it: {exc}")
            return True

    async def release(self) -> None:
        await self.store.release_refresh_lock()
