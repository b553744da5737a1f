"""News provider adapters: NewsAPI, GNews, TheNewsAPI, NewsData.io."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core import Candidate, ContentType
from utils.exceptions import ProviderResponseError
from .base import BaseSourceAdapter, SourceBatch, as_list, coalesce_text, parse_datetime, stable_id, strip_html
from .http import SourceHttp


logger = logging.getLogger(__name__)

_NEWSAPI_TOP = "https://newsapi.org/v2/top-headlines"
_GNEWS_TOP = "https://gnews.io/api/v4/top-headlines"
_THENEWSAPI_TOP = "https://api.thenewsapi.com/v1/news/top"
_NEWSDATA_LATEST = "https://newsdata.io/api/1/latest"

# NewsAPI placeholder for deleted articles
_REMOVED_MARKERS = {"[removed]", "removed"}


def _build_candidate(
    *,
    source: str,
    title: Any,
    description: Any,
    url: Any,
    published_at: Any,
    source_name: Any,
) -> Optional[Candidate]:
    clean_title = strip_html(title)
    if not clean_title or clean_title.lower() in _REMOVED_MARKERS:
        return None
    clean_url = str(url or "").strip()
    clean_description = strip_html(description)
    return Candidate(
        id=stable_id(clean_url, clean_title, clean_description),
        title=clean_title,
        description=clean_description,
        url=clean_url,
        published_at=parse_datetime(published_at),
        source_name=coalesce_text(source_name, source),
        source=source,
    )


def map_newsapi_article(raw: Dict[str, Any], source: str = "newsapi") -> Optional[Candidate]:
    provider = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    return _build_candidate(
        source=source,
        title=raw.get("title"),
        description=raw.get("description") or raw.get("content"),
        url=raw.get("url"),
        published_at=raw.get("publishedAt"),
        source_name=provider.get("name"),
    )


def map_gnews_article(raw: Dict[str, Any], source: str = "gnews") -> Optional[Candidate]:
    provider = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    return _build_candidate(
        source=source,
        title=raw.get("title"),
        description=raw.get("description") or raw.get("content"),
        url=raw.get("url"),
        published_at=raw.get("publishedAt"),
        source_name=provider.get("name"),
    )


def map_thenewsapi_article(raw: Dict[str, Any], source: str = "thenewsapi") -> Optional[Candidate]:
    return _build_candidate(
        source=source,
        title=raw.get("title"),
        description=raw.get("description") or raw.get("snippet"),
        url=raw.get("url"),
        published_at=raw.get("published_at"),
        source_name=raw.get("source"),
    )


def map_newsdata_article(raw: Dict[str, Any], source: str = "newsdata") -> Optional[Candidate]:
    return _build_candidate(
        source=source,
        title=raw.get("title"),
        description=raw.get("description"),
        url=raw.get("link"),
        published_at=raw.get("pubDate"),
        source_name=raw.get("source_name") or raw.get("source_id"),
    )


def _collect(raw_items: List[Dict[str, Any]], mapper, source: str, limit: int) -> List[Candidate]:
    items: List[Candidate] = []
    for raw in raw_items:
        candidate = mapper(raw, source)
        if candidate is None:
            continue
        items.append(candidate)
        if len(items) >= limit:
            break
    return items


class NewsAPIAdapter(BaseSourceAdapter[Candidate]):
    """NewsAPI top headlines, optionally narrowed to one category."""

    required_env = ("NEWS_NEWSAPI_KEY",)

    def __init__(self, api_key: Optional[str], *, category: Optional[str] = None, max_results: int = 20):
        self.api_key = api_key
        self.category = category
        self.max_results = max_results

    @property
    def name(self) -> str:
        return f"newsapi_{self.category or 'general'}"

    @property
    def content_type(self) -> ContentType:
        return ContentType.NEWS

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, http: SourceHttp) -> SourceBatch[Candidate]:
        params: Dict[str, Any] = {"country": "us", "pageSize": self.max_results, "apiKey": self.api_key}
        if self.category:
            params["category"] = self.category
        data = await http.get_json(_NEWSAPI_TOP, source=self.name, params=params)
        if not isinstance(data, dict) or data.get("status") != "ok":
            message = data.get("message") if isinstance(data, dict) else None
            raise ProviderResponseError(f"NewsAPI error: {message or 'Unknown error'}", source=self.name)

        items = _collect(as_list(data.get("articles")), map_newsapi_article, self.name, self.max_results)
        self._log_fetch(len(items))
        return SourceBatch(
            source=self.name,
            content_type=self.content_type,
            items=items,
            total_results=data.get("totalResults"),
        )


class GNewsAdapter(BaseSourceAdapter[Candidate]):
    required_env = ("NEWS_GNEWS_API_KEY",)

    def __init__(self, api_key: Optional[str], *, max_results: int = 20):
        self.api_key = api_key
        self.max_results = max_results

    @property
    def name(self) -> str:
        return "gnews_comprehensive"

    @property
    def content_type(self) -> ContentType:
        return ContentType.NEWS

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, http: SourceHttp) -> SourceBatch[Candidate]:
        params = {"country": "us", "lang": "en", "max": self.max_results, "token": self.api_key}
        data = await http.get_json(_GNEWS_TOP, source=self.name, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("articles"), list):
            errors = data.get("errors") if isinstance(data, dict) else None
            detail = errors[0] if isinstance(errors, list) and errors else "No articles returned"
            raise ProviderResponseError(f"GNews error: {detail}", source=self.name)

        items = _collect(as_list(data.get("articles")), map_gnews_article, self.name, self.max_results)
        self._log_fetch(len(items))
        return SourceBatch(
            source=self.name,
            content_type=self.content_type,
            items=items,
            total_results=data.get("totalArticles"),
        )


class TheNewsAPIAdapter(BaseSourceAdapter[Candidate]):
    required_env = ("NEWS_THENEWSAPI_KEY",)

    def __init__(self, api_key: Optional[str], *, max_results: int = 20):
        self.api_key = api_key
        self.max_results = max_results

    @property
    def name(self) -> str:
        return "thenewsapi_top"

    @property
    def content_type(self) -> ContentType:
        return ContentType.NEWS

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, http: SourceHttp) -> SourceBatch[Candidate]:
        params = {"api_token": self.api_key, "locale": "us", "language": "en", "limit": self.max_results}
        data = await http.get_json(_THENEWSAPI_TOP, source=self.name, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise ProviderResponseError("TheNewsAPI: no data returned", source=self.name)

        items = _collect(as_list(data.get("data")), map_thenewsapi_article, self.name, self.max_results)
        self._log_fetch(len(items))
        meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
        return SourceBatch(
            source=self.name,
            content_type=self.content_type,
            items=items,
            total_results=meta.get("found"),
        )


class NewsDataAdapter(BaseSourceAdapter[Candidate]):
    required_env = ("NEWS_NEWSDATA_API_KEY",)

    def __init__(self, api_key: Optional[str], *, max_results: int = 20):
        self.api_key = api_key
        self.max_results = max_results

    @property
    def name(self) -> str:
        return "newsdata_latest"

    @property
    def content_type(self) -> ContentType:
        return ContentType.NEWS

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, http: SourceHttp) -> SourceBatch[Candidate]:
        params = {"apikey": self.api_key, "country": "us", "language": "en"}
        data = await http.get_json(_NEWSDATA_LATEST, source=self.name, params=params)
        if not isinstance(data, dict) or data.get("status") != "success":
            results = data.get("results") if isinstance(data, dict) else None
            message = results.get("message") if isinstance(results, dict) else None
            raise ProviderResponseError(f"NewsData.io error: {message or 'Unknown error'}", source=self.name)

        items = _collect(as_list(data.get("results")), map_newsdata_article, self.name, self.max_results)
        self._log_fetch(len(items))
        return SourceBatch(
            source=self.name,
            content_type=self.content_type,
            items=items,
            total_results=data.get("totalResults"),
        )
