from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from config import Settings
from core import ContentType
from sources import (
    ESPNAdapter,
    FetchOrchestrator,
    NewsAPIAdapter,
    RetryPolicy,
    SourceHttp,
    TheSportsDBAdapter,
    YahooFinanceAdapter,
    build_default_adapters,
)
from sources.news import map_gnews_article, map_newsapi_article, map_newsdata_article, map_thenewsapi_article
from sources.sports import map_espn_event, map_thesportsdb_event
from sources.stocks import map_yahoo_quote


async def _no_sleep(_: float) -> None:
    return None


def _http(handler) -> SourceHttp:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SourceHttp(client, RetryPolicy(max_tries=2, base_delay_ms=1, timeout_ms=2000), sleep=_no_sleep)


def test_map_newsapi_article_normalizes_fields() -> None:
    candidate = map_newsapi_article(
        {
            "source": {"id": "reuters", "name": "Reuters"},
            "title": "  Fed holds <b>rates</b> steady ",
            "description": "The Federal Reserve kept rates unchanged.",
            "url": "https://reuters.example/fed",
            "publishedAt": "2025-10-20T11:30:00Z",
        },
        "newsapi_general",
    )
    assert candidate is not None
    assert candidate.id == "https://reuters.example/fed"
    assert candidate.title == "Fed holds rates steady"
    assert candidate.source_name == "Reuters"
    assert candidate.source == "newsapi_general"
    assert candidate.published_at == datetime(2025, 10, 20, 11, 30, tzinfo=timezone.utc)
    assert candidate.importance_score == 0


def test_mappers_drop_removed_or_untitled_articles() -> None:
    assert map_newsapi_article({"title": "[Removed]", "url": "https://x.example"}) is None
    assert map_gnews_article({"title": "", "url": "https://x.example"}) is None


def test_other_news_mappers_read_their_provider_shapes() -> None:
    thenews = map_thenewsapi_article(
        {"title": "Senate passes bill", "snippet": "Vote was close", "url": "https://a.example/1",
         "published_at": "2025-10-20T10:00:00.000000Z", "source": "apnews.com"}
    )
    newsdata = map_newsdata_article(
        {"title": "Markets rally", "description": "Stocks up", "link": "https://b.example/2",
         "pubDate": "2025-10-20 09:00:00", "source_id": "cnbc"}
    )
    assert thenews.description == "Vote was close"
    assert thenews.source_name == "apnews.com"
    assert newsdata.url == "https://b.example/2"
    assert newsdata.source_name == "cnbc"
    assert newsdata.published_at == datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc)


def test_candidate_without_url_gets_content_hash_id() -> None:
    candidate = map_gnews_article({"title": "No link story", "description": "text"})
    assert candidate.id.startswith("sha1:")
    assert candidate.id == map_gnews_article({"title": "No link story", "description": "text"}).id


def test_map_espn_event_reads_competitors_and_notes() -> None:
    game = map_espn_event(
        {
            "id": "401",
            "name": "Los Angeles Dodgers at Toronto Blue Jays",
            "date": "2025-10-24T23:00Z",
            "status": {"type": {"name": "STATUS_FINAL"}},
            "competitions": [
                {
                    "venue": {"fullName": "Rogers Centre"},
                    "notes": [{"headline": "World Series - Game 1"}],
                    "competitors": [
                        {"homeAway": "home", "score": "11", "team": {"displayName": "Toronto Blue Jays"}},
                        {"homeAway": "away", "score": "4", "team": {"displayName": "Los Angeles Dodgers"}},
                    ],
                }
            ],
        },
        "mlb",
    )
    assert game.id == "espn:mlb:401"
    assert game.home_team == "Toronto Blue Jays"
    assert game.away_team == "Los Angeles Dodgers"
    assert (game.home_score, game.away_score) == (11, 4)
    assert game.description == "World Series - Game 1"
    assert game.sport == "baseball"
    assert game.status == "STATUS_FINAL"


def test_map_thesportsdb_event_handles_missing_scores() -> None:
    game = map_thesportsdb_event(
        {
            "idEvent": "77",
            "strEvent": "Boston Celtics vs New York Knicks",
            "strLeague": "NBA",
            "strSport": "Basketball",
            "strHomeTeam": "Boston Celtics",
            "strAwayTeam": "New York Knicks",
            "intHomeScore": None,
            "intAwayScore": "",
            "dateEvent": "2025-10-22",
            "strTime": "23:30:00",
        }
    )
    assert game.id == "thesportsdb:77"
    assert game.league == "nba"
    assert game.home_score is None and game.away_score is None
    assert game.date == datetime(2025, 10, 22, 23, 30, tzinfo=timezone.utc)


def test_map_yahoo_quote_accepts_raw_wrappers() -> None:
    quote = map_yahoo_quote(
        {"symbol": "aapl", "shortName": "Apple", "regularMarketPrice": {"raw": 231.5},
         "regularMarketChangePercent": -1.25, "regularMarketTime": 1760990400}
    )
    assert quote.symbol == "AAPL"
    assert quote.name == "Apple"
    assert quote.price == 231.5
    assert quote.change_percent == -1.25
    assert quote.market_time == 1760990400
    assert map_yahoo_quote({"symbol": ""}) is None


def test_adapters_without_keys_report_required_env() -> None:
    settings = Settings()
    settings.news.newsapi_key = None
    adapters = {adapter.name: adapter for adapter in build_default_adapters(settings)}

    assert not adapters["newsapi_general"].is_configured()
    assert adapters["newsapi_general"].required_env == ("NEWS_NEWSAPI_KEY",)
    assert adapters["espn"].is_configured()
    assert not YahooFinanceAdapter(None, ["AAPL"]).is_configured()


@pytest.mark.asyncio
async def test_newsapi_adapter_rejects_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "error", "message": "apiKeyInvalid"})

    http = _http(handler)
    outcome = await FetchOrchestrator(http).fetch_one(NewsAPIAdapter("bad-key"))
    await http.client.aclose()

    assert not outcome.success
    assert "apiKeyInvalid" in outcome.error


@pytest.mark.asyncio
async def test_newsapi_business_adapter_sends_category() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(
            200,
            json={"status": "ok", "totalResults": 1, "articles": [
                {"title": "Merger announced", "url": "https://n.example/m", "source": {"name": "CNBC"}}
            ]},
        )

    http = _http(handler)
    adapter = NewsAPIAdapter("key", category="business", max_results=5)
    batch = await adapter.fetch(http)
    await http.client.aclose()

    assert adapter.name == "newsapi_business"
    assert seen["category"] == "business"
    assert seen["pageSize"] == "5"
    assert batch.content_type == ContentType.NEWS
    assert [item.title for item in batch.items] == ["Merger announced"]


@pytest.mark.asyncio
async def test_espn_adapter_tolerates_one_failing_league() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "/basketball/nba/" in request.url.path:
            return httpx.Response(503)
        return httpx.Response(
            200,
            json={"events": [{"id": "9", "name": "Chiefs at Bills", "competitions": [{"competitors": []}]}]},
        )

    http = _http(handler)
    batch = await ESPNAdapter(["nba", "nfl"]).fetch(http)
    await http.client.aclose()

    assert [game.id for game in batch.items] == ["espn:nfl:9"]


@pytest.mark.asyncio
async def test_thesportsdb_adapter_queries_today() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["d"] = request.url.params.get("d")
        return httpx.Response(200, json={"events": None})

    http = _http(handler)
    adapter = TheSportsDBAdapter("123", today=lambda: datetime(2025, 10, 20, tzinfo=timezone.utc))
    batch = await adapter.fetch(http)
    await http.client.aclose()

    assert seen["path"].endswith("/json/123/eventsday.php")
    assert seen["d"] == "2025-10-20"
    assert batch.items == []


@pytest.mark.asyncio
async def test_fetch_all_isolates_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "newsapi" in request.url.host:
            return httpx.Response(503)
        return httpx.Response(200, json={"quoteResponse": {"result": [{"symbol": "MSFT"}]}})

    http = _http(handler)
    outcomes = await FetchOrchestrator(http).fetch_all(
        [NewsAPIAdapter("key"), YahooFinanceAdapter("key", ["MSFT"])]
    )
    await http.client.aclose()

    by_source = {outcome.source: outcome for outcome in outcomes}
    assert not by_source["newsapi_general"].success
    assert by_source["yahoo_finance"].success
    assert by_source["yahoo_finance"].batch.items[0].symbol == "MSFT"
