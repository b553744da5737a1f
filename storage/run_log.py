"""Fetch-attempt and refresh-run logging."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from core import FetchLogEntry, RefreshRun
from utils.exceptions import CacheError


logger = logging.getLogger(__name__)

_STATUS_ORDER = {"critical": 1, "cache_only": 2, "stale": 3, "recent": 4, "fresh": 5}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def freshness_status(last_success: Optional[datetime], now: datetime, has_cache: bool = False) -> str:
    """Bucket a source by time since its last successful fetch."""
    if last_success is not None:
        age = now - last_success
        if age < timedelta(hours=1):
            return "fresh"
        if age < timedelta(hours=6):
            return "recent"
        if age < timedelta(hours=24):
            return "stale"
    elif has_cache:
        return "cache_only"
    return "critical"


class RunLogger(ABC):
    """Sink for per-source fetch attempts and per-run summaries."""

    @abstractmethod
    async def log_fetch(self, entry: FetchLogEntry) -> None:
        pass

    @abstractmethod
    async def log_run(self, run: RefreshRun) -> None:
        pass

    @abstractmethod
    async def content_freshness(
        self, cached_sources: Iterable[Tuple[str, str]] = ()
    ) -> List[Dict[str, Any]]:
        """Per-source freshness rows, worst status first."""
        pass

    async def aclose(self) -> None:
        return None


class InMemoryRunLogger(RunLogger):
    """Thread-safe in-process log, also used by tests."""

    def __init__(self, max_runs: int = 100) -> None:
        self.max_runs = max(1, int(max_runs))
        self._fetches: List[FetchLogEntry] = []
        self._runs: List[RefreshRun] = []
        self._lock = Lock()

    async def log_fetch(self, entry: FetchLogEntry) -> None:
        with self._lock:
            self._fetches.append(entry)

    async def log_run(self, run: RefreshRun) -> None:
        with self._lock:
            self._runs.append(run.model_copy(deep=True))
            if len(self._runs) > self.max_runs:
                self._runs = self._runs[-self.max_runs:]

    @property
    def fetches(self) -> List[FetchLogEntry]:
        with self._lock:
            return list(self._fetches)

    @property
    def runs(self) -> List[RefreshRun]:
        with self._lock:
            return [run.model_copy(deep=True) for run in self._runs]

    def latest_run(self) -> Optional[RefreshRun]:
        with self._lock:
            return self._runs[-1].model_copy(deep=True) if self._runs else None

    def freshness_summary(
        self,
        now: Optional[datetime] = None,
        cached_sources: Iterable[Tuple[str, str]] = (),
    ) -> List[Dict[str, Any]]:
        """
        Per-source health over the last 48h of fetch attempts.

        ``cached_sources`` holds (source, content_type) pairs that currently
        have unexpired cache entries.
        """
        now = now or _utcnow()
        window_48h = now - timedelta(hours=48)
        window_24h = now - timedelta(hours=24)
        cached = set(cached_sources)

        grouped: Dict[Tuple[str, str], List[FetchLogEntry]] = {}
        for entry in self.fetches:
            if entry.created_at <= window_48h:
                continue
            grouped.setdefault((entry.source, entry.content_type.value), []).append(entry)

        summary = []
        for (source, content_type), entries in grouped.items():
            successes = [e.created_at for e in entries if e.fetch_status == "success"]
            last_success = max(successes) if successes else None
            recent = [e for e in entries if e.created_at > window_24h]
            cache_ages = [
                e.cached_data_age_hours for e in entries
                if e.fetch_status == "failed_used_cache" and e.cached_data_age_hours is not None
            ]
            summary.append(
                {
                    "source": source,
                    "content_type": content_type,
                    "last_success": last_success.isoformat() if last_success else None,
                    "hours_since_success": (
                        round((now - last_success).total_seconds() / 3600.0, 2) if last_success else None
                    ),
                    "fallback_count_24h": sum(1 for e in recent if e.fetch_status == "failed_used_cache"),
                    "failure_count_24h": sum(1 for e in recent if e.fetch_status == "failed_no_cache"),
                    "max_cache_age_used": max(cache_ages) if cache_ages else None,
                    "status": freshness_status(last_success, now, (source, content_type) in cached),
                }
            )
        return sorted(summary, key=lambda row: (_STATUS_ORDER[row["status"]], row["source"]))

    async def content_freshness(
        self, cached_sources: Iterable[Tuple[str, str]] = ()
    ) -> List[Dict[str, Any]]:
        return self.freshness_summary(cached_sources=cached_sources)


class SupabaseRunLogger(RunLogger):
    """Inserts fetch attempts into the ``content_fetch_log`` table via PostgREST."""

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
            "Prefer": "return=minimal",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def log_fetch(self, entry: FetchLogEntry) -> None:
        row = entry.model_dump(mode="json")
        try:
            response = await self._client.post(
                f"{self.base_url}/rest/v1/content_fetch_log",
                json=row,
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            raise CacheError(f"content_fetch_log insert failed: {exc}") from exc
        if response.status_code >= 400:
            raise CacheError(
                f"content_fetch_log insert returned HTTP {response.status_code}",
                {"body": response.text[:300]},
            )

    async def log_run(self, run: RefreshRun) -> None:
        # No run table upstream; the summary goes to the application log.
        logger.info(
            f"[run-log] {run.request_id} state={run.state} successful={run.successful} "
            f"failed={run.failed} curated={run.curated_count} duration_ms={run.duration_ms}"
        )

    async def content_freshness(
        self, cached_sources: Iterable[Tuple[str, str]] = ()
    ) -> List[Dict[str, Any]]:
        # the RPC joins content_cache itself, cached_sources is not needed
        try:
            response = await self._client.post(
                f"{self.base_url}/rest/v1/rpc/get_content_freshness_summary",
                json={},
                headers={**self._headers, "Prefer": "return=representation"},
            )
        except httpx.HTTPError as exc:
            raise CacheError(f"get_content_freshness_summary failed: {exc}") from exc
        if response.status_code >= 400:
            raise CacheError(
                f"get_content_freshness_summary returned HTTP {response.status_code}",
                {"body": response.text[:300]},
            )
        try:
            rows = response.json() if response.content else []
        except ValueError as exc:
            raise CacheError("get_content_freshness_summary returned invalid JSON") from exc
        return rows if isinstance(rows, list) else []

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def get_run_logger(settings=None) -> RunLogger:
    if settings is None:
        from config import get_cache_settings
        settings = get_cache_settings()
    if settings.supabase_url and settings.service_role_key:
        return SupabaseRunLogger(settings.supabase_url, settings.service_role_key, timeout=settings.rpc_timeout)
    return InMemoryRunLogger()
