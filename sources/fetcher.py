"""Concurrent fan-out over source adapters with per-source failure isolation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from config import Settings
from .base import BaseSourceAdapter, SourceBatch
from .http import SourceHttp
from .news import GNewsAdapter, NewsAPIAdapter, NewsDataAdapter, TheNewsAPIAdapter
from .sports import ESPNAdapter, TheSportsDBAdapter
from .stocks import YahooFinanceAdapter


logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome:
    """Settled result of one adapter: either a batch or an error message."""

    adapter: BaseSourceAdapter
    batch: Optional[SourceBatch] = None
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.batch is not None and self.error is None

    @property
    def source(self) -> str:
        return self.adapter.name


OutcomeHandler = Callable[[SourceOutcome], Awaitable[None]]


class FetchOrchestrator:
    """Runs every adapter concurrently and joins them all-settled."""

    def __init__(self, http: SourceHttp) -> None:
        self.http = http

    async def fetch_one(self, adapter: BaseSourceAdapter) -> SourceOutcome:
        started = time.perf_counter()
        logger.info(f"Fetching {adapter.name} ({adapter.content_type.value})")
        try:
            batch = await adapter.fetch(self.http)
        except Exception as exc:
            duration_ms = int((time.perf_counter() - started) * 1000)
            logger.error(f"[{adapter.name}] fetch failed after {duration_ms}ms: {exc}")
            return SourceOutcome(adapter=adapter, error=str(exc) or type(exc).__name__, duration_ms=duration_ms)

        duration_ms = int((time.perf_counter() - started) * 1000)
        return SourceOutcome(adapter=adapter, batch=batch, duration_ms=duration_ms)

    async def fetch_all(
        self,
        adapters: Sequence[BaseSourceAdapter],
        on_outcome: Optional[OutcomeHandler] = None,
    ) -> List[SourceOutcome]:
        """
        Fetch all adapters in parallel.

        ``on_outcome`` runs inside each adapter's task as soon as that adapter
        settles, so per-source caching does not wait on slower siblings.
        """

        async def _run(adapter: BaseSourceAdapter) -> SourceOutcome:
            outcome = await self.fetch_one(adapter)
            if on_outcome is not None:
                await on_outcome(outcome)
            return outcome

        settled = await asyncio.gather(*(_run(adapter) for adapter in adapters), return_exceptions=True)

        outcomes: List[SourceOutcome] = []
        for adapter, result in zip(adapters, settled):
            if isinstance(result, BaseException):
                logger.error(f"[{adapter.name}] outcome handler failed: {result}")
                outcomes.append(SourceOutcome(adapter=adapter, error=str(result) or type(result).__name__))
                continue
            outcomes.append(result)
        return outcomes


def build_default_adapters(settings: Settings) -> List[BaseSourceAdapter]:
    """Every provider the refresh cycle knows about; unconfigured ones are skipped later."""
    news = settings.news
    sports = settings.sports
    return [
        NewsAPIAdapter(news.newsapi_key, max_results=news.max_articles_per_source),
        NewsAPIAdapter(news.newsapi_key, category="business", max_results=news.max_articles_per_source),
        GNewsAdapter(news.gnews_api_key, max_results=news.max_articles_per_source),
        TheNewsAPIAdapter(news.thenewsapi_key, max_results=news.max_articles_per_source),
        NewsDataAdapter(news.newsdata_api_key, max_results=news.max_articles_per_source),
        YahooFinanceAdapter(settings.stocks.rapidapi_key, settings.stocks.symbols),
        ESPNAdapter(sports.espn_leagues, max_results=sports.max_games_per_source),
        TheSportsDBAdapter(sports.thesportsdb_api_key, max_results=sports.max_games_per_source),
    ]
