"""
Refresh Pipeline
一次有界的内容刷新：锁 → 并发抓取 → 增强并逐源缓存 → 汇总去重 → 多样性筛选 → AI 精选 → 缓存精选结果
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import httpx

from config import Settings, get_settings
from core import (
    Candidate,
    ContentType,
    FetchLogEntry,
    GameCandidate,
    RefreshRun,
    SourceResult,
    StockQuote,
)
from orchestrator.lock import CacheStoreRefreshLock, RefreshLock
from sources import (
    BaseSourceAdapter,
    FetchOrchestrator,
    RetryPolicy,
    SourceHttp,
    SourceOutcome,
    build_default_adapters,
)
from storage import (
    CURATED_SOURCE,
    ContentCacheStore,
    RunLogger,
    get_content_cache,
    get_run_logger,
)
from utils.exceptions import ConfigurationError
from .curation import CurationResult, LLMRanker, Ranker, curate
from .dedup import dedupe
from .diversity import select_diverse
from .news_scoring import enhance_news
from .rules import RULES_VERSION
from .sports_scoring import SeasonalTuning, enhance_game


logger = logging.getLogger(__name__)

SKIP_MESSAGE = "skipping; another instance holds the lock"
EMPTY_DATA_ERROR = "Empty data returned"

# content_type -> key of the full item list inside a cached payload
PAYLOAD_KEYS = {
    ContentType.NEWS: "articles",
    ContentType.SPORTS: "games",
    ContentType.STOCKS: "quotes",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_request_id() -> str:
    return f"refresh_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


def compact_news(candidate: Candidate) -> Dict[str, Any]:
    return {
        "id": candidate.id,
        "title": candidate.title,
        "description": candidate.description[:300],
        "url": candidate.url,
        "source_name": candidate.source_name,
        "published_at": candidate.published_at.isoformat() if candidate.published_at else None,
        "importance_score": candidate.importance_score,
        "topic_category": candidate.topic_category.value,
    }


def compact_game(game: GameCandidate) -> Dict[str, Any]:
    return {
        "id": game.id,
        "name": game.name,
        "league": game.league,
        "home_team": game.home_team,
        "away_team": game.away_team,
        "home_score": game.home_score,
        "away_score": game.away_score,
        "status": game.status,
        "date": game.date.isoformat() if game.date else None,
        "significance_score": game.significance_score,
    }


def compact_quote(quote: StockQuote) -> Dict[str, Any]:
    return {
        "symbol": quote.symbol,
        "name": quote.name,
        "price": quote.price,
        "change_percent": quote.change_percent,
    }


_COMPACTORS = {
    ContentType.NEWS: compact_news,
    ContentType.SPORTS: compact_game,
    ContentType.STOCKS: compact_quote,
}


def build_payload(content_type: ContentType, source: str, items: Sequence[Any], total_results: Optional[int],
                  fetched_at: datetime) -> Dict[str, Any]:
    """Cached row body: full enhanced items plus a compact view for script generation."""
    compactor = _COMPACTORS[content_type]
    return {
        PAYLOAD_KEYS[content_type]: [item.model_dump(mode="json") for item in items],
        "compact": {content_type.value: [compactor(item) for item in items]},
        "total_results": total_results if total_results is not None else len(items),
        "fetched_at": fetched_at.isoformat(),
        "source": source,
    }


def candidates_from_fresh(rows: Sequence[Dict[str, Any]], exclude_sources: Sequence[str] = ()) -> List[Candidate]:
    """Rebuild news candidates from get_fresh_content rows, newest row first."""
    pooled: List[Candidate] = []
    excluded = set(exclude_sources)
    for row in rows:
        if not isinstance(row, dict) or row.get("source") in excluded:
            continue
        articles = (row.get("data") or {}).get(PAYLOAD_KEYS[ContentType.NEWS]) or []
        for article in articles:
            if not isinstance(article, dict):
                continue
            try:
                pooled.append(Candidate.model_validate(article))
            except Exception as exc:
                logger.debug(f"Skipping malformed cached article from {row.get('source')}: {exc}")
    return pooled


class RunCollector:
    """Serializes writes to the shared run record from concurrent adapter tasks."""

    def __init__(self, run: RefreshRun) -> None:
        self.run = run
        self._lock = asyncio.Lock()

    async def record(self, result: SourceResult) -> None:
        async with self._lock:
            self.run.sources[result.source] = result
            if result.success:
                self.run.successful += 1
            else:
                self.run.failed += 1
                self.run.errors.append(f"{result.source}: {result.error}")


@dataclass
class PipelineOptions:
    expires_hours: int = 12
    curated_source: str = CURATED_SOURCE
    curated_expires_hours: int = 12
    shortlist_size: int = 25
    target_count: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineOptions":
        return cls(
            expires_hours=settings.cache.expires_hours,
            curated_source=settings.cache.curated_source,
            curated_expires_hours=settings.cache.curated_expires_hours,
            shortlist_size=settings.curation.shortlist_size,
            target_count=settings.curation.target_count,
        )


class RefreshPipeline:
    """
    内容刷新流水线

    所有协作者通过构造函数注入，便于在测试中替换为内存实现。
    """

    def __init__(
        self,
        *,
        adapters: Sequence[BaseSourceAdapter],
        http: SourceHttp,
        cache: ContentCacheStore,
        run_logger: RunLogger,
        lock: Optional[RefreshLock] = None,
        ranker: Optional[Ranker] = None,
        options: Optional[PipelineOptions] = None,
        tuning: Optional[SeasonalTuning] = None,
        clock=None,
    ) -> None:
        self.adapters = list(adapters)
        self.http = http
        self.cache = cache
        self.run_logger = run_logger
        self.lock = lock or CacheStoreRefreshLock(cache)
        self.ranker = ranker
        self.options = options or PipelineOptions()
        self.tuning = tuning or SeasonalTuning()
        self._clock = clock or _utcnow
        self.fetcher = FetchOrchestrator(http)

    # ---- per-source stage ----

    def _enhance(self, outcome: SourceOutcome, now: datetime) -> List[Any]:
        items = list(outcome.batch.items)
        content_type = outcome.adapter.content_type
        if content_type == ContentType.NEWS:
            return [enhance_news(item, now) for item in items]
        if content_type == ContentType.SPORTS:
            return [enhance_game(item, now, self.tuning) for item in items]
        return items

    async def _cached_age_hours(self, content_type: ContentType, source: str) -> Optional[float]:
        try:
            fresh = await self.cache.get_fresh_content([content_type.value])
        except Exception as exc:
            logger.warning(f"[{source}] could not check cache fallback: {exc}")
            return None
        for row in fresh.get(content_type.value, []):
            if row.get("source") == source:
                try:
                    return round(float(row.get("age_hours") or 0.0), 2)
                except (TypeError, ValueError):
                    return 0.0
        return None

    async def _log_fetch(self, entry: FetchLogEntry) -> None:
        try:
            await self.run_logger.log_fetch(entry)
        except Exception as exc:
            logger.warning(f"[{entry.source}] fetch log write failed: {exc}")

    async def _handle_outcome(self, outcome: SourceOutcome, collector: RunCollector) -> None:
        adapter = outcome.adapter
        tag = f"{collector.run.request_id}:{adapter.name}"
        content_type = adapter.content_type
        error = outcome.error
        items: List[Any] = []

        if outcome.success:
            items = self._enhance(outcome, self._clock())
            if not items:
                error = EMPTY_DATA_ERROR
                logger.warning(f"[{tag}] returned empty data")
            else:
                payload = build_payload(
                    content_type,
                    adapter.name,
                    items,
                    outcome.batch.total_results,
                    outcome.batch.fetched_at,
                )
                try:
                    await self.cache.cache_content(
                        content_type.value,
                        adapter.name,
                        payload,
                        self.options.expires_hours,
                    )
                    logger.info(f"[{tag}] cached {len(items)} items")
                except Exception as exc:
                    error = f"cache write failed: {exc}"
                    logger.error(f"[{tag}] failed to cache: {exc}")

        success = error is None
        if success:
            entry = FetchLogEntry(
                source=adapter.name,
                content_type=content_type,
                fetch_status="success",
                items_fetched=len(items),
                api_response_time_ms=outcome.duration_ms,
            )
        else:
            age = await self._cached_age_hours(content_type, adapter.name)
            entry = FetchLogEntry(
                source=adapter.name,
                content_type=content_type,
                fetch_status="failed_used_cache" if age is not None else "failed_no_cache",
                error_message=error,
                cached_data_age_hours=age,
                api_response_time_ms=outcome.duration_ms,
            )
        await self._log_fetch(entry)
        await collector.record(
            SourceResult(
                source=adapter.name,
                content_type=content_type,
                success=success,
                duration_ms=outcome.duration_ms,
                items=len(items) if success else 0,
                error=error,
            )
        )

    # ---- pooled stage ----

    async def _pool_news(self, run: RefreshRun) -> List[Candidate]:
        try:
            fresh = await self.cache.get_fresh_content([ContentType.NEWS.value])
        except Exception as exc:
            logger.error(f"[{run.request_id}] pooling read failed: {exc}")
            run.errors.append(f"pool: {exc}")
            return []
        return candidates_from_fresh(fresh.get(ContentType.NEWS.value, []), [self.options.curated_source])

    async def _curate_and_cache(self, run: RefreshRun) -> None:
        pooled = await self._pool_news(run)
        unique = dedupe(pooled)
        shortlist = select_diverse(unique, self.options.shortlist_size)
        run.pooled_candidates = len(pooled)
        logger.info(
            f"[{run.request_id}] pooled={len(pooled)} unique={len(unique)} shortlist={len(shortlist)}"
        )
        if not shortlist:
            logger.warning(f"[{run.request_id}] no news candidates to curate")
            return

        result: CurationResult = await curate(shortlist, self.options.target_count, self.ranker)
        run.curated_count = len(result.items)
        run.curation_method = result.method
        if result.error:
            run.errors.append(f"curation: {result.error}")

        llm = getattr(self.ranker, "llm", None)
        payload = {
            "stories": [item.model_dump(mode="json") for item in result.items],
            "generation_metadata": {
                "articles_processed": len(unique),
                "shortlist_size": len(shortlist),
                "method": result.method,
                "model": getattr(llm, "model", None),
                "rules_version": RULES_VERSION,
                "generated_at": self._clock().isoformat(),
            },
        }
        try:
            await self.cache.cache_content(
                ContentType.NEWS.value,
                self.options.curated_source,
                payload,
                self.options.curated_expires_hours,
            )
            logger.info(f"[{run.request_id}] cached {len(result.items)} curated stories ({result.method})")
        except Exception as exc:
            logger.error(f"[{run.request_id}] failed to cache curated set: {exc}")
            run.errors.append(f"{self.options.curated_source}: {exc}")

    async def _cleanup(self, run: RefreshRun) -> None:
        try:
            run.cleaned_up = await self.cache.cleanup_expired_content()
            logger.info(f"[{run.request_id}] cleaned up {run.cleaned_up} expired entries")
        except Exception as exc:
            logger.warning(f"[{run.request_id}] cleanup failed: {exc}")

    # ---- entry point ----

    async def run(self, request_id: Optional[str] = None) -> RefreshRun:
        run = RefreshRun(request_id=request_id or new_request_id(), started_at=self._clock())
        started = time.perf_counter()

        async with self.lock.hold() as acquired:
            if not acquired:
                logger.info(f"[{run.request_id}] {SKIP_MESSAGE}")
                run.state = "skipped"
                run.completed_at = self._clock()
                await self._log_run(run)
                return run

            try:
                await self._execute(run)
                run.state = "completed"
            except Exception as exc:
                logger.exception(f"[{run.request_id}] refresh run failed: {exc}")
                run.state = "failed"
                run.errors.append(f"run: {type(exc).__name__}: {exc}")
            finally:
                run.duration_ms = int((time.perf_counter() - started) * 1000)
                run.completed_at = self._clock()

        logger.info(
            f"[{run.request_id}] refresh {run.state} in {run.duration_ms}ms "
            f"successful={run.successful} failed={run.failed} curated={run.curated_count}"
        )
        await self._log_run(run)
        return run

    async def _execute(self, run: RefreshRun) -> None:
        active: List[BaseSourceAdapter] = []
        for adapter in self.adapters:
            if adapter.is_configured():
                active.append(adapter)
                continue
            logger.warning(f"[{run.request_id}:{adapter.name}] not configured, skipping")
            for env_name in adapter.required_env:
                if env_name not in run.missing_envs:
                    run.missing_envs.append(env_name)

        collector = RunCollector(run)

        async def _on_outcome(outcome: SourceOutcome) -> None:
            await self._handle_outcome(outcome, collector)

        outcomes = await self.fetcher.fetch_all(active, on_outcome=_on_outcome)
        for outcome in outcomes:
            if outcome.source not in run.sources:
                # the outcome handler itself blew up
                await collector.record(
                    SourceResult(
                        source=outcome.source,
                        content_type=outcome.adapter.content_type,
                        success=False,
                        duration_ms=outcome.duration_ms,
                        error=outcome.error,
                    )
                )

        await self._cleanup(run)
        await self._curate_and_cache(run)

    async def _log_run(self, run: RefreshRun) -> None:
        try:
            await self.run_logger.log_run(run)
        except Exception as exc:
            logger.warning(f"[{run.request_id}] run log write failed: {exc}")

    async def freshness(self) -> List[Dict[str, Any]]:
        """Fetch-log health per source, marking sources that still have fresh cache."""
        try:
            stats = await self.cache.get_content_stats()
        except Exception as exc:
            logger.warning(f"freshness: cache stats unavailable: {exc}")
            stats = []
        cached = [(row.get("source"), row.get("content_type")) for row in stats]
        return await self.run_logger.content_freshness(cached)

    async def aclose(self) -> None:
        await self.http.client.aclose()
        await self.cache.aclose()
        await self.run_logger.aclose()
        llm = getattr(self.ranker, "llm", None)
        if llm is not None:
            await llm.aclose()


def build_ranker(settings: Settings) -> Optional[Ranker]:
    """LLMRanker when an LLM key is configured, otherwise None (score fallback only)."""
    from intelligence.llm import get_llm

    try:
        llm = get_llm(settings=settings.llm)
    except ConfigurationError as exc:
        logger.warning(f"LLM curation disabled: {exc}")
        return None
    return LLMRanker(llm, max_per_category=settings.curation.max_per_category, timeout=settings.llm.timeout)


def build_refresh_pipeline(
    settings: Optional[Settings] = None,
    *,
    cache: Optional[ContentCacheStore] = None,
    run_logger: Optional[RunLogger] = None,
    lock: Optional[RefreshLock] = None,
) -> RefreshPipeline:
    """Wire a pipeline from settings; explicit collaborators override the defaults."""
    settings = settings or get_settings()
    cache = cache or get_content_cache(settings.cache)
    # per-attempt bound comes from fetch_with_retry, not httpx defaults
    client = httpx.AsyncClient(
        follow_redirects=True,
        timeout=None,
        headers={"User-Agent": "content-refresh/0.1"},
    )
    return RefreshPipeline(
        adapters=build_default_adapters(settings),
        http=SourceHttp(client, RetryPolicy.from_settings(settings.fetch)),
        cache=cache,
        run_logger=run_logger or get_run_logger(settings.cache),
        lock=lock,
        ranker=build_ranker(settings),
        options=PipelineOptions.from_settings(settings),
        tuning=SeasonalTuning.from_settings(settings.scoring),
    )
