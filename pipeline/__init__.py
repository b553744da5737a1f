"""Scoring, selection, curation and the refresh cycle."""

from .curation import (
    FALLBACK_REASON,
    CurationResult,
    LLMRanker,
    Ranker,
    ScoreRanker,
    curate,
)
from .dedup import dedup_key, dedupe
from .diversity import REQUIRED_CATEGORIES, select_diverse
from .news_scoring import enhance_news, score_news
from .refresh import (
    PipelineOptions,
    RefreshPipeline,
    build_ranker,
    build_refresh_pipeline,
    new_request_id,
)
from .sports_scoring import SeasonalTuning, enhance_game, score_game

__all__ = [
    "FALLBACK_REASON",
    "CurationResult",
    "LLMRanker",
    "PipelineOptions",
    "REQUIRED_CATEGORIES",
    "Ranker",
    "RefreshPipeline",
    "ScoreRanker",
    "SeasonalTuning",
    "build_ranker",
    "build_refresh_pipeline",
    "curate",
    "dedup_key",
    "dedupe",
    "enhance_game",
    "enhance_news",
    "new_request_id",
    "score_game",
    "score_news",
    "select_diverse",
]
