from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from config import CacheSettings
from core import ContentType, FetchLogEntry
from storage import (
    CURATED_SOURCE,
    InMemoryRunLogger,
    MemoryContentCache,
    SupabaseContentCache,
    SupabaseRunLogger,
    freshness_status,
    get_content_cache,
)
from utils.exceptions import CacheError


START = datetime(2025, 10, 20, 6, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.mark.asyncio
async def test_cache_content_upserts_latest_write() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)

    await cache.cache_content("news", "gnews_comprehensive", {"articles": "[1]"})
    clock.advance(minutes=30)
    await cache.cache_content("news", "gnews_comprehensive", {"articles": "[2]"})

    fresh = await cache.get_fresh_content(["news"])
    assert cache.size() == 1
    assert cache.writes == 2
    assert [row["data"]["articles"] for row in fresh["news"]] == ["[2]"]
    assert fresh["news"][0]["age_hours"] == 0.0


@pytest.mark.asyncio
async def test_expired_entries_are_hidden_then_cleaned_up() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)
    await cache.cache_content("news", "short_lived", {"n": 1}, expires_hours=1)
    await cache.cache_content("news", "long_lived", {"n": 2}, expires_hours=12)
    await cache.cache_content("stocks", "yahoo_finance", {"n": 3}, expires_hours=2)

    clock.advance(hours=1)
    fresh = await cache.get_fresh_content()

    assert [row["source"] for row in fresh["news"]] == ["long_lived"]
    assert "sports" not in fresh
    assert fresh["news"][0]["age_hours"] == 1.0

    assert await cache.cleanup_expired_content() == 1
    clock.advance(hours=1)
    assert await cache.cleanup_expired_content() == 1
    assert cache.size() == 1


@pytest.mark.asyncio
async def test_fresh_content_orders_newest_first() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)
    await cache.cache_content("sports", "espn", {})
    clock.advance(minutes=5)
    await cache.cache_content("sports", "thesportsdb", {})

    fresh = await cache.get_fresh_content(["sports"])
    assert [row["source"] for row in fresh["sports"]] == ["thesportsdb", "espn"]


@pytest.mark.asyncio
async def test_top_ten_stories_reads_curated_entry() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)
    assert await cache.get_top_ten_stories() == []

    stories = [{"id": f"s{idx}", "ai_rank": idx + 1} for idx in range(10)]
    await cache.cache_content("news", CURATED_SOURCE, {"stories": stories}, expires_hours=12)

    assert await cache.get_top_ten_stories() == stories
    clock.advance(hours=12)
    assert await cache.get_top_ten_stories() == []


@pytest.mark.asyncio
async def test_compact_content_aggregates_and_limits() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)
    await cache.cache_content("news", "a", {"compact": {"news": [{"title": f"a{idx}"} for idx in range(150)]}})
    clock.advance(minutes=1)
    await cache.cache_content("news", "b", {"compact": {"news": [{"title": f"b{idx}"} for idx in range(150)]}})

    compact = await cache.get_compact_content(["news", "sports"])

    assert len(compact["news"]) == 200
    assert compact["news"][0]["title"] == "b0"
    assert compact["sports"] == []


@pytest.mark.asyncio
async def test_content_stats_and_refresh_lock() -> None:
    clock = FakeClock()
    cache = MemoryContentCache(clock=clock)
    await cache.cache_content("stocks", "yahoo_finance", {})
    await cache.cache_content("news", "gnews_comprehensive", {})
    clock.advance(hours=3)

    stats = await cache.get_content_stats()
    assert [(row["content_type"], row["source"]) for row in stats] == [
        ("news", "gnews_comprehensive"),
        ("stocks", "yahoo_finance"),
    ]
    assert stats[0]["avg_age_hours"] == 3.0

    assert await cache.try_refresh_lock() is True
    assert await cache.try_refresh_lock() is False
    await cache.release_refresh_lock()
    assert await cache.try_refresh_lock() is True


@pytest.mark.asyncio
async def test_supabase_cache_calls_rpc_functions() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, json.loads(request.content or b"{}"), request.headers["apikey"]))
        if request.url.path.endswith("/get_fresh_content"):
            return httpx.Response(200, json={"news": [{"source": "x", "data": {}}], "stocks": None})
        if request.url.path.endswith("/try_refresh_lock"):
            return httpx.Response(200, json=False)
        return httpx.Response(204)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    cache = SupabaseContentCache("https://db.example/", "service-key", client=client)

    await cache.cache_content("news", "espn", {"games": "[]"}, expires_hours=6)
    fresh = await cache.get_fresh_content(["news", "stocks"])
    locked = await cache.try_refresh_lock()
    await client.aclose()

    assert calls[0] == (
        "/rest/v1/rpc/cache_content",
        {"p_content_type": "news", "p_source": "espn", "p_data": {"games": "[]"}, "p_expires_hours": 6},
        "service-key",
    )
    assert calls[1][1] == {"requested_types": ["news", "stocks"]}
    assert fresh == {"news": [{"source": "x", "data": {}}]}
    assert locked is False


@pytest.mark.asyncio
async def test_supabase_cache_raises_cache_error_on_http_failure() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))
    cache = SupabaseContentCache("https://db.example", "service-key", client=client)

    with pytest.raises(CacheError) as exc_info:
        await cache.cleanup_expired_content()
    await client.aclose()

    assert "HTTP 500" in str(exc_info.value)


def test_get_content_cache_defaults_to_memory() -> None:
    assert isinstance(get_content_cache(CacheSettings(supabase_url=None, service_role_key=None)), MemoryContentCache)


def test_freshness_status_buckets() -> None:
    now = START
    assert freshness_status(now - timedelta(minutes=30), now) == "fresh"
    assert freshness_status(now - timedelta(hours=3), now) == "recent"
    assert freshness_status(now - timedelta(hours=20), now) == "stale"
    assert freshness_status(None, now, has_cache=True) == "cache_only"
    assert freshness_status(None, now) == "critical"
    assert freshness_status(now - timedelta(hours=30), now, has_cache=True) == "critical"


@pytest.mark.asyncio
async def test_freshness_summary_counts_fallbacks_and_failures() -> None:
    run_logger = InMemoryRunLogger()
    now = START

    def entry(status: str, hours_ago: float, source: str = "espn", age=None) -> FetchLogEntry:
        return FetchLogEntry(
            source=source,
            content_type=ContentType.SPORTS,
            fetch_status=status,
            cached_data_age_hours=age,
            created_at=now - timedelta(hours=hours_ago),
        )

    await run_logger.log_fetch(entry("success", 3))
    await run_logger.log_fetch(entry("failed_used_cache", 2, age=1.5))
    await run_logger.log_fetch(entry("failed_used_cache", 1, age=2.5))
    await run_logger.log_fetch(entry("failed_no_cache", 0.5))
    await run_logger.log_fetch(entry("failed_no_cache", 2, source="thesportsdb"))
    await run_logger.log_fetch(entry("success", 60, source="thesportsdb"))

    summary = run_logger.freshness_summary(now, cached_sources=[("thesportsdb", "sports")])

    assert [row["source"] for row in summary] == ["thesportsdb", "espn"]
    espn = summary[1]
    assert espn["status"] == "recent"
    assert espn["hours_since_success"] == 3.0
    assert espn["fallback_count_24h"] == 2
    assert espn["failure_count_24h"] == 1
    assert espn["max_cache_age_used"] == 2.5
    assert summary[0]["status"] == "cache_only"


@pytest.mark.asyncio
async def test_supabase_run_logger_inserts_fetch_rows() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["prefer"] = request.headers.get("Prefer")
        seen["row"] = json.loads(request.content)
        return httpx.Response(201)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    run_logger = SupabaseRunLogger("https://db.example", "service-key", client=client)
    await run_logger.log_fetch(
        FetchLogEntry(source="espn", content_type=ContentType.SPORTS, fetch_status="success", items_fetched=4)
    )
    await client.aclose()

    assert seen["path"] == "/rest/v1/content_fetch_log"
    assert seen["prefer"] == "return=minimal"
    assert seen["row"]["fetch_status"] == "success"
    assert seen["row"]["content_type"] == "sports"
    assert seen["row"]["items_fetched"] == 4


@pytest.mark.asyncio
async def test_supabase_run_logger_reads_freshness_rpc() -> None:
    seen = {}
    rows = [
        {"source": "gnews_comprehensive", "content_type": "news", "status": "critical", "failure_count_24h": 3},
        {"source": "espn_nba", "content_type": "sports", "status": "fresh", "failure_count_24h": 0},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["prefer"] = request.headers.get("prefer")
        return httpx.Response(200, json=rows)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    run_logger = SupabaseRunLogger("https://db.example", "service-key", client=client)
    result = await run_logger.content_freshness()
    await client.aclose()

    assert seen["path"] == "/rest/v1/rpc/get_content_freshness_summary"
    assert seen["prefer"] == "return=representation"
    assert [row["source"] for row in result] == ["gnews_comprehensive", "espn_nba"]


@pytest.mark.asyncio
async def test_supabase_run_logger_freshness_error_raises_cache_error() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404, text="missing")))
    run_logger = SupabaseRunLogger("https://db.example", "service-key", client=client)
    with pytest.raises(CacheError):
        await run_logger.content_freshness()
    await client.aclose()
