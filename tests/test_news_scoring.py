from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core import Candidate, EditorialWeight, GeographicScope, TopicCategory
from pipeline import news_scoring
from pipeline.news_scoring import (
    allocate_spots,
    classify_category,
    classify_editorial_weight,
    classify_geographic_scope,
    enhance_news,
    geo_relevance,
    recency_points,
    score_news,
    source_authority_points,
)
from pipeline.rules import CATEGORY_RULES, METRO_SCORE_CAP, matches_any


NOW = datetime(2025, 10, 20, 12, 0, tzinfo=timezone.utc)


def _candidate(title: str, description: str = "", *, source_name: str = "Local Gazette", age_minutes=None) -> Candidate:
    published = NOW - timedelta(minutes=age_minutes) if age_minutes is not None else None
    return Candidate(
        id=f"https://news.example/{abs(hash(title))}",
        title=title,
        description=description,
        url=f"https://news.example/{abs(hash(title))}",
        published_at=published,
        source_name=source_name,
    )


def test_wire_story_on_fed_rates_scores_32_business_buried() -> None:
    candidate = _candidate("Federal Reserve weighs interest rate path", source_name="Reuters", age_minutes=30)

    enhanced = enhance_news(candidate, NOW)

    assert enhanced.importance_score == 32
    assert enhanced.topic_category == TopicCategory.BUSINESS
    assert enhanced.editorial_weight == EditorialWeight.BURIED
    assert enhanced.spots_needed == 2
    assert candidate.importance_score == 0


def test_source_authority_tiers() -> None:
    assert source_authority_points("Associated Press") == 10
    assert source_authority_points("The Washington Post") == 8
    assert source_authority_points("CBS News") == 6
    assert source_authority_points("Springfield Shopper") == 3
    assert source_authority_points("") == 3


def test_recency_brackets() -> None:
    assert recency_points(NOW - timedelta(minutes=59), NOW) == 10
    assert recency_points(NOW - timedelta(hours=5), NOW) == 5
    assert recency_points(NOW - timedelta(hours=11), NOW) == 2
    assert recency_points(NOW - timedelta(hours=13), NOW) == 0
    assert recency_points(None, NOW) == 0
    assert recency_points(NOW + timedelta(hours=2), NOW) == 10


def test_keyword_groups_are_independent_and_additive() -> None:
    candidate = _candidate("Election vote as inflation and war dominate", age_minutes=60 * 24)
    # 3 source + 20 elections + 15 economy + 15 conflict
    assert score_news(candidate, NOW) == 53


def test_score_is_clamped_to_100() -> None:
    candidate = _candidate(
        "Breaking: president declares war as stock market crash follows election vote",
        "Supreme Court, Federal Reserve, inflation, hurricane, billion merger, lawsuit, earnings, policy, "
        "health pandemic, AI technology, developing update",
        source_name="Reuters",
        age_minutes=5,
    )
    assert score_news(candidate, NOW) == 100


def test_whole_word_matching_avoids_substrings() -> None:
    assert not matches_any("a warm welcome", ("war",))
    assert matches_any("two wars loom", ("war",))
    assert not matches_any("said the chair", ("ai",))
    assert matches_any("new ai rules", ("ai",))


def test_category_uses_first_match_in_fixed_order() -> None:
    order = [rule.category for rule in CATEGORY_RULES]
    assert order == [
        TopicCategory.POLITICS,
        TopicCategory.BUSINESS,
        TopicCategory.TECHNOLOGY,
        TopicCategory.HEALTH,
        TopicCategory.CLIMATE,
        TopicCategory.SPORTS,
        TopicCategory.INTERNATIONAL,
    ]
    # politics wins even though business and technology terms also appear
    assert classify_category("senate hearing on ai stock trading") == TopicCategory.POLITICS
    assert classify_category("nvidia earnings beat") == TopicCategory.BUSINESS
    assert classify_category("hospital strain as virus spreads in china") == TopicCategory.HEALTH
    assert classify_category("ukraine talks resume") == TopicCategory.INTERNATIONAL
    assert classify_category("local bakery wins award") == TopicCategory.GENERAL


def test_geographic_scope_priority() -> None:
    assert classify_geographic_scope("texas governor meets china envoy") == GeographicScope.INTERNATIONAL
    assert classify_geographic_scope("wildfire spreads across california") == GeographicScope.STATE
    assert classify_geographic_scope("federal budget talks") == GeographicScope.NATIONAL
    assert classify_geographic_scope("bakery opens") == GeographicScope.NATIONAL


def test_editorial_weight_thresholds_and_overrides() -> None:
    assert classify_editorial_weight(70, "quiet day") == EditorialWeight.FRONT_PAGE
    assert classify_editorial_weight(10, "breaking: bridge closes") == EditorialWeight.FRONT_PAGE
    assert classify_editorial_weight(40, "quiet day") == EditorialWeight.PAGE_3
    assert classify_editorial_weight(12, "senate passes budget") == EditorialWeight.PAGE_3
    assert classify_editorial_weight(39, "quiet day") == EditorialWeight.BURIED


def test_spot_allocation() -> None:
    assert allocate_spots("nation declares war", EditorialWeight.FRONT_PAGE, 90) == 3
    assert allocate_spots("nation declares war", EditorialWeight.FRONT_PAGE, 80) == 2
    assert allocate_spots("quiet day", EditorialWeight.FRONT_PAGE, 75) == 2
    assert allocate_spots("hurricane nears coast", EditorialWeight.PAGE_3, 45) == 2
    assert allocate_spots("quiet day", EditorialWeight.BURIED, 20) == 1


def test_geo_relevance_scores_and_caps_metros() -> None:
    scores = geo_relevance("chicago transit strike hits cook county, illinois officials say")
    assert scores == {"chicago": 17}

    capped = geo_relevance("los angeles and l.a. leaders tour hollywood and santa monica in california")
    assert capped["los_angeles"] == METRO_SCORE_CAP
    assert geo_relevance("nothing local here") == {}


def test_enhance_keeps_scores_in_range_for_many_inputs() -> None:
    titles = ["", "war", "breaking election", "weather", "billion trillion ipo merger"]
    for title in titles:
        enhanced = enhance_news(_candidate(title or "untitled", age_minutes=1), NOW)
        assert 0 <= enhanced.importance_score <= 100
        assert 1 <= enhanced.spots_needed <= 3


def test_model_validation_clamps_out_of_range_scores() -> None:
    assert Candidate(id="x", importance_score=250).importance_score == 100
    assert Candidate(id="x", importance_score=-4).importance_score == 0
    assert Candidate(id="x", spots_needed=9).spots_needed == 3
    assert news_scoring.clamp_score(-1) == 0
