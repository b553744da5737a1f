"""Importance scoring and editorial classification for news candidates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from core import Candidate, EditorialWeight, GeographicScope, TopicCategory
from pipeline.rules import (
    CATEGORY_RULES,
    CITY_POINTS,
    DEFAULT_SCOPE,
    DEFAULT_SOURCE_POINTS,
    DOUBLE_SPOT_KEYWORDS,
    FRONT_PAGE_OVERRIDES,
    FRONT_PAGE_THRESHOLD,
    GENERATIONAL_EVENTS,
    GENERATIONAL_MIN_SCORE,
    LOCAL_KEYWORD_POINTS,
    METRO_PROFILES,
    METRO_SCORE_CAP,
    NEWS_KEYWORD_WEIGHTS,
    PAGE_3_OVERRIDES,
    PAGE_3_THRESHOLD,
    RECENCY_BONUS,
    SCOPE_RULES,
    SOURCE_TIERS,
    STATE_POINTS,
    MetroProfile,
    matched_terms,
    matches_any,
)


def clamp_score(value: float) -> int:
    return max(0, min(100, int(round(float(value)))))


def candidate_text(candidate: Candidate) -> str:
    return f"{candidate.title} {candidate.description}".strip().lower()


def source_authority_points(source_name: str) -> int:
    name = str(source_name or "").strip().lower()
    if not name:
        return DEFAULT_SOURCE_POINTS
    for tier in SOURCE_TIERS:
        if matches_any(name, tier.outlets):
            return tier.points
    return DEFAULT_SOURCE_POINTS


def recency_points(published_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    if published_at is None:
        return 0
    current = now or datetime.now(timezone.utc)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    age_hours = max(0.0, (current - published_at).total_seconds() / 3600.0)
    for max_age, bonus in RECENCY_BONUS:
        if age_hours < max_age:
            return bonus
    return 0


def keyword_points(text: str) -> Dict[str, int]:
    """Matched keyword groups and their weights; groups are independent."""
    return {rule.name: rule.weight for rule in NEWS_KEYWORD_WEIGHTS if matches_any(text, rule.terms)}


def news_score_breakdown(candidate: Candidate, now: Optional[datetime] = None) -> Dict[str, int]:
    breakdown = {"source": source_authority_points(candidate.source_name)}
    for name, weight in keyword_points(candidate_text(candidate)).items():
        breakdown[f"keyword.{name}"] = weight
    recency = recency_points(candidate.published_at, now)
    if recency:
        breakdown["recency"] = recency
    return breakdown


def score_news(candidate: Candidate, now: Optional[datetime] = None) -> int:
    """Additive importance score clamped to [0, 100]."""
    return clamp_score(sum(news_score_breakdown(candidate, now).values()))


def classify_category(text: str) -> TopicCategory:
    for rule in CATEGORY_RULES:
        if matches_any(text, rule.terms):
            return rule.category
    return TopicCategory.GENERAL


def classify_geographic_scope(text: str) -> GeographicScope:
    for rule in SCOPE_RULES:
        if matches_any(text, rule.terms):
            return rule.scope
    return DEFAULT_SCOPE


def classify_editorial_weight(importance_score: int, text: str) -> EditorialWeight:
    if importance_score >= FRONT_PAGE_THRESHOLD or matches_any(text, FRONT_PAGE_OVERRIDES):
        return EditorialWeight.FRONT_PAGE
    if importance_score >= PAGE_3_THRESHOLD or matches_any(text, PAGE_3_OVERRIDES):
        return EditorialWeight.PAGE_3
    return EditorialWeight.BURIED


def allocate_spots(text: str, editorial_weight: EditorialWeight, importance_score: int) -> int:
    """How many presentation slots a story merits downstream (1-3)."""
    front_page = editorial_weight == EditorialWeight.FRONT_PAGE
    if front_page and importance_score >= GENERATIONAL_MIN_SCORE and matches_any(text, GENERATIONAL_EVENTS):
        return 3
    if front_page or matches_any(text, DOUBLE_SPOT_KEYWORDS):
        return 2
    return 1


def metro_score(text: str, profile: MetroProfile, *, include_teams: bool = False) -> int:
    score = CITY_POINTS * len(matched_terms(text, profile.cities))
    if include_teams:
        score += CITY_POINTS * len(matched_terms(text, profile.teams))
    score += LOCAL_KEYWORD_POINTS * len(matched_terms(text, profile.local_keywords))
    score += STATE_POINTS * len(matched_terms(text, profile.states))
    return min(METRO_SCORE_CAP, score)


def geo_relevance(
    text: str,
    profiles: Sequence[MetroProfile] = METRO_PROFILES,
    *,
    include_teams: bool = False,
) -> Dict[str, int]:
    """Per-metro relevance; metros with no local signal are omitted."""
    scores: Dict[str, int] = {}
    for profile in profiles:
        score = metro_score(text, profile, include_teams=include_teams)
        if score > 0:
            scores[profile.metro_id] = score
    return scores


def enhance_news(candidate: Candidate, now: Optional[datetime] = None) -> Candidate:
    """Return a scored and classified copy of ``candidate``."""
    text = candidate_text(candidate)
    importance = score_news(candidate, now)
    weight = classify_editorial_weight(importance, text)
    return candidate.model_copy(
        update={
            "importance_score": importance,
            "topic_category": classify_category(text),
            "geographic_scope": classify_geographic_scope(text),
            "editorial_weight": weight,
            "spots_needed": allocate_spots(text, weight, importance),
            "geo_relevance": geo_relevance(text),
        }
    )
