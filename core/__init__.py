"""Core contracts and shared types for the refresh pipeline."""

from .contracts import (
    CacheEntry,
    Candidate,
    ContentType,
    CuratedCandidate,
    EditorialWeight,
    FetchLogEntry,
    FetchStatus,
    GameCandidate,
    GameType,
    GeographicScope,
    RefreshResponse,
    RefreshRun,
    SourceResult,
    StockQuote,
    TopicCategory,
)

__all__ = [
    "CacheEntry",
    "Candidate",
    "ContentType",
    "CuratedCandidate",
    "EditorialWeight",
    "FetchLogEntry",
    "FetchStatus",
    "GameCandidate",
    "GameType",
    "GeographicScope",
    "RefreshResponse",
    "RefreshRun",
    "SourceResult",
    "StockQuote",
    "TopicCategory",
]
