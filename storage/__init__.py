"""
Storage Module
存储模块 - 内容缓存和抓取日志
"""
from .cache import (
    COMPACT_LIMIT,
    CURATED_SOURCE,
    ContentCacheStore,
    MemoryContentCache,
    SupabaseContentCache,
    get_content_cache,
)
from .run_log import (
    InMemoryRunLogger,
    RunLogger,
    SupabaseRunLogger,
    freshness_status,
    get_run_logger,
)

__all__ = [
    # Cache
    "COMPACT_LIMIT",
    "CURATED_SOURCE",
    "ContentCacheStore",
    "MemoryContentCache",
    "SupabaseContentCache",
    "get_content_cache",
    # Run log
    "InMemoryRunLogger",
    "RunLogger",
    "SupabaseRunLogger",
    "freshness_status",
    "get_run_logger",
]
