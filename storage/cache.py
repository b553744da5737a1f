"""
Content Cache
内容缓存 - 按 (content_type, source) 存储带 TTL 的抓取结果
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

import httpx

from core import CacheEntry
from utils.exceptions import CacheError


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPES = ("news", "stocks", "sports")
CURATED_SOURCE = "top_ten_ai_curated"
COMPACT_LIMIT = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _age_hours(created_at: datetime, now: datetime) -> float:
    return max(0.0, (now - created_at).total_seconds() / 3600.0)


class ContentCacheStore(ABC):
    """
    内容缓存抽象基类

    所有方法都是网络挂起点 (async)，实现需保证按 key upsert。
    """

    @abstractmethod
    async def cache_content(
        self,
        content_type: str,
        source: str,
        data: Dict[str, Any],
        expires_hours: int = 12,
    ) -> None:
        """写入 / 覆盖一个 (content_type, source) 条目"""
        pass

    @abstractmethod
    async def cleanup_expired_content(self) -> int:
        """删除过期条目，返回删除数量"""
        pass

    @abstractmethod
    async def get_fresh_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        读取未过期内容

        Returns:
            {content_type: [{source, data, fetched_at, age_hours}]}，没有内容的类型不出现
        """
        pass

    @abstractmethod
    async def get_compact_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """聚合每个类型的 compact 条目 (最多 200 条, 新的在前)"""
        pass

    @abstractmethod
    async def get_top_ten_stories(self) -> List[Dict[str, Any]]:
        """最新的精选新闻列表，没有则返回 []"""
        pass

    @abstractmethod
    async def get_content_stats(self) -> List[Dict[str, Any]]:
        """按 (content_type, source) 统计未过期条目"""
        pass

    @abstractmethod
    async def try_refresh_lock(self) -> bool:
        """尝试获取全局刷新锁"""
        pass

    @abstractmethod
    async def release_refresh_lock(self) -> None:
        """释放全局刷新锁"""
        pass

    async def aclose(self) -> None:
        return None


class MemoryContentCache(ContentCacheStore):
    """
    内存内容缓存
    适合开发、测试和单进程部署
    """

    def __init__(self, clock=None):
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = Lock()
        self._refresh_locked = False
        self._clock = clock or _utcnow
        self.writes = 0

    def _now(self) -> datetime:
        return self._clock()

    def _fresh_entries(self, content_type: str) -> List[CacheEntry]:
        now = self._now()
        with self._lock:
            entries = [
                entry for (ctype, _), entry in self._entries.items()
                if ctype == content_type and not entry.is_expired(now)
            ]
        return sorted(entries, key=lambda entry: entry.created_at, reverse=True)

    async def cache_content(
        self,
        content_type: str,
        source: str,
        data: Dict[str, Any],
        expires_hours: int = 12,
    ) -> None:
        now = self._now()
        entry = CacheEntry(
            content_type=content_type,
            source=source,
            data=dict(data or {}),
            created_at=now,
            expires_at=now + timedelta(hours=max(0, int(expires_hours))),
        )
        with self._lock:
            self._entries[(content_type, source)] = entry
            self.writes += 1

    async def cleanup_expired_content(self) -> int:
        now = self._now()
        with self._lock:
            expired_keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._entries[key]
        return len(expired_keys)

    async def get_fresh_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        now = self._now()
        result: Dict[str, List[Dict[str, Any]]] = {}
        for content_type in types:
            rows = [
                {
                    "source": entry.source,
                    "data": entry.data,
                    "fetched_at": entry.created_at.isoformat(),
                    "age_hours": round(_age_hours(entry.created_at, now), 4),
                }
                for entry in self._fresh_entries(content_type)
            ]
            if rows:
                result[content_type] = rows
        return result

    async def get_compact_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        result: Dict[str, List[Dict[str, Any]]] = {}
        for content_type in types:
            items: List[Dict[str, Any]] = []
            for entry in self._fresh_entries(content_type):
                compact = (entry.data.get("compact") or {}).get(content_type) or []
                if isinstance(compact, list):
                    items.extend(item for item in compact if isinstance(item, dict))
            result[content_type] = items[:COMPACT_LIMIT]
        return result

    async def get_top_ten_stories(self) -> List[Dict[str, Any]]:
        now = self._now()
        with self._lock:
            entry = self._entries.get(("news", CURATED_SOURCE))
        if entry is None or entry.is_expired(now):
            return []
        stories = entry.data.get("stories")
        return list(stories) if isinstance(stories, list) else []

    async def get_content_stats(self) -> List[Dict[str, Any]]:
        now = self._now()
        with self._lock:
            entries = [entry for entry in self._entries.values() if not entry.is_expired(now)]
        stats = []
        for entry in sorted(entries, key=lambda item: (item.content_type, item.source)):
            stats.append(
                {
                    "content_type": entry.content_type,
                    "source": entry.source,
                    "count": 1,
                    "latest_fetch": entry.created_at.isoformat(),
                    "oldest_fetch": entry.created_at.isoformat(),
                    "avg_age_hours": round(_age_hours(entry.created_at, now), 2),
                }
            )
        return stats

    async def try_refresh_lock(self) -> bool:
        with self._lock:
            if self._refresh_locked:
                return False
            self._refresh_locked = True
            return True

    async def release_refresh_lock(self) -> None:
        with self._lock:
            self._refresh_locked = False

    def size(self) -> int:
        """返回条目数量 (含已过期未清理的)"""
        with self._lock:
            return len(self._entries)


class SupabaseContentCache(ContentCacheStore):
    """
    Supabase / PostgREST RPC 实现

    调用 /rest/v1/rpc/<function>，使用 service role key 认证。
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        *,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not url or not service_role_key:
            raise CacheError("Supabase url and service role key are required")
        self.base_url = url.rstrip("/")
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/rest/v1/rpc/{function}"
        try:
            response = await self._client.post(url, json=params or {}, headers=self._headers)
        except httpx.HTTPError as exc:
            raise CacheError(f"RPC {function} failed: {exc}", {"function": function}) from exc
        if response.status_code >= 400:
            raise CacheError(
                f"RPC {function} returned HTTP {response.status_code}",
                {"function": function, "body": response.text[:300]},
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise CacheError(f"RPC {function} returned invalid JSON", {"function": function}) from exc

    async def cache_content(
        self,
        content_type: str,
        source: str,
        data: Dict[str, Any],
        expires_hours: int = 12,
    ) -> None:
        await self.rpc(
            "cache_content",
            {
                "p_content_type": content_type,
                "p_source": source,
                "p_data": data,
                "p_expires_hours": int(expires_hours),
            },
        )

    async def cleanup_expired_content(self) -> int:
        result = await self.rpc("cleanup_expired_content")
        try:
            return int(result or 0)
        except (TypeError, ValueError):
            return 0

    async def get_fresh_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        result = await self.rpc("get_fresh_content", {"requested_types": list(types)})
        if not isinstance(result, dict):
            return {}
        return {key: value for key, value in result.items() if isinstance(value, list)}

    async def get_compact_content(
        self,
        types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    ) -> Dict[str, List[Dict[str, Any]]]:
        result = await self.rpc("get_compact_content", {"requested_types": list(types)})
        if not isinstance(result, dict):
            return {content_type: [] for content_type in types}
        return {
            content_type: list(result.get(content_type) or [])[:COMPACT_LIMIT]
            for content_type in types
        }

    async def get_top_ten_stories(self) -> List[Dict[str, Any]]:
        result = await self.rpc("get_top_ten_stories")
        return list(result) if isinstance(result, list) else []

    async def get_content_stats(self) -> List[Dict[str, Any]]:
        result = await self.rpc("get_content_stats")
        return list(result) if isinstance(result, list) else []

    async def try_refresh_lock(self) -> bool:
        return bool(await self.rpc("try_refresh_lock"))

    async def release_refresh_lock(self) -> None:
        await self.rpc("release_refresh_lock")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def get_content_cache(settings=None) -> ContentCacheStore:
    """
    获取内容缓存实例

    配置了 CACHE_SUPABASE_URL 和 CACHE_SERVICE_ROLE_KEY 时使用 Supabase，否则使用内存缓存
    """
    if settings is None:
        from config import get_cache_settings
        settings = get_cache_settings()

    if settings.supabase_url and settings.service_role_key:
        return SupabaseContentCache(
            settings.supabase_url,
            settings.service_role_key,
            timeout=settings.rpc_timeout,
        )
    logger.info("Supabase not configured; using in-memory content cache")
    return MemoryContentCache()
