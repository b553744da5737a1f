"""Canonical data contracts for the content refresh pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clamp_score(value: Any) -> int:
    try:
        score = int(round(float(value or 0)))
    except Exception:
        score = 0
    return max(0, min(100, score))


def _clamp_spots(value: Any) -> int:
    try:
        spots = int(value or 1)
    except Exception:
        spots = 1
    return max(1, min(3, spots))


class ContentType(str, Enum):
    """Content families cached by the refresh cycle."""

    NEWS = "news"
    STOCKS = "stocks"
    SPORTS = "sports"


class TopicCategory(str, Enum):
    POLITICS = "politics"
    BUSINESS = "business"
    TECHNOLOGY = "technology"
    HEALTH = "health"
    CLIMATE = "climate"
    SPORTS = "sports"
    INTERNATIONAL = "international"
    GENERAL = "general"


class GeographicScope(str, Enum):
    INTERNATIONAL = "international"
    STATE = "state"
    NATIONAL = "national"


class EditorialWeight(str, Enum):
    """Print-newspaper style placement tier."""

    FRONT_PAGE = "front_page"
    PAGE_3 = "page_3"
    BURIED = "buried"


class GameType(str, Enum):
    CHAMPIONSHIP = "championship"
    PLAYOFF = "playoff"
    SEASON_OPENER = "season_opener"
    RIVALRY = "rivalry"
    REGULAR = "regular"


class Candidate(BaseModel):
    """Normalized, provider-agnostic news item."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    description: str = ""
    url: str = ""
    published_at: Optional[datetime] = None
    source_name: str = ""
    source: str = ""
    importance_score: int = 0
    topic_category: TopicCategory = TopicCategory.GENERAL
    geographic_scope: GeographicScope = GeographicScope.NATIONAL
    editorial_weight: EditorialWeight = EditorialWeight.BURIED
    spots_needed: int = 1
    geo_relevance: Dict[str, int] = Field(default_factory=dict)

    @field_validator("importance_score", mode="before")
    @classmethod
    def _bounded_score(cls, value: Any) -> int:
        return _clamp_score(value)

    @field_validator("spots_needed", mode="before")
    @classmethod
    def _bounded_spots(cls, value: Any) -> int:
        return _clamp_spots(value)

    @field_validator("title", "description", "url", "source_name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()


class CuratedCandidate(Candidate):
    """Candidate selected into the final curated set."""

    ai_rank: int
    selection_reason: str = ""
    enhanced_summary: str = ""


class GameCandidate(BaseModel):
    """Normalized sports event."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    league: str = ""
    sport: str = ""
    home_team: str = ""
    away_team: str = ""
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: str = ""
    date: Optional[datetime] = None
    venue: str = ""
    source_name: str = ""
    significance_score: int = 0
    game_type: GameType = GameType.REGULAR
    seasonal_context: str = ""
    sports_spots: int = 1
    location_relevance: Dict[str, int] = Field(default_factory=dict)

    @field_validator("significance_score", mode="before")
    @classmethod
    def _bounded_score(cls, value: Any) -> int:
        return _clamp_score(value)

    @field_validator("sports_spots", mode="before")
    @classmethod
    def _bounded_spots(cls, value: Any) -> int:
        return _clamp_spots(value)

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def _optional_int(cls, value: Any) -> Optional[int]:
        text = str(value if value is not None else "").strip()
        if not text:
            return None
        try:
            return int(float(text))
        except Exception:
            return None

    @property
    def text(self) -> str:
        parts = (self.name, self.description, self.home_team, self.away_team, self.league, self.status)
        return " ".join(part for part in parts if part)


class StockQuote(BaseModel):
    """Single quote from the financial-quotes provider."""

    symbol: str
    name: str = ""
    price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    market_cap: Optional[float] = None
    market_time: Optional[int] = None


class CacheEntry(BaseModel):
    """TTL cache row keyed by (content_type, source)."""

    content_type: str
    source: str
    data: Dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class SourceResult(BaseModel):
    """Outcome of one source adapter inside a refresh run."""

    source: str
    content_type: ContentType
    success: bool
    duration_ms: int = 0
    items: int = 0
    error: Optional[str] = None


FetchStatus = Literal["success", "failed_used_cache", "failed_no_cache"]


class FetchLogEntry(BaseModel):
    """Row written to the content fetch log after each source attempt."""

    source: str
    content_type: ContentType
    fetch_status: FetchStatus
    error_message: Optional[str] = None
    cached_data_age_hours: Optional[float] = None
    items_fetched: int = 0
    api_response_time_ms: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RefreshRun(BaseModel):
    """Bookkeeping for one refresh cycle."""

    request_id: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    state: Literal["running", "completed", "skipped", "failed"] = "running"
    sources: Dict[str, SourceResult] = Field(default_factory=dict)
    successful: int = 0
    failed: int = 0
    missing_envs: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    pooled_candidates: int = 0
    curated_count: int = 0
    curation_method: Optional[str] = None
    cleaned_up: Optional[int] = None
    duration_ms: int = 0


class RefreshResponse(BaseModel):
    """Envelope returned by the trigger endpoint (always HTTP 200)."""

    success: bool
    message: str
    request_id: str
    started_at: Optional[str] = None
    error: Optional[str] = None
