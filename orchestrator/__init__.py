"""Refresh run orchestration: single-flight lock and fire-and-forget service."""

from .lock import CacheStoreRefreshLock, InProcessRefreshLock, LockHold, RefreshLock
from .service import RefreshService, get_default_service

__all__ = [
    "CacheStoreRefreshLock",
    "InProcessRefreshLock",
    "LockHold",
    "RefreshLock",
    "RefreshService",
    "get_default_service",
]
