from __future__ import annotations

from core import Candidate, TopicCategory
from pipeline.dedup import DEDUP_KEY_LENGTH, dedup_key, dedupe
from pipeline.diversity import REQUIRED_CATEGORIES, select_diverse


def _item(idx: int, score: int, category: TopicCategory = TopicCategory.POLITICS, **kwargs) -> Candidate:
    fields = {
        "id": f"c{idx}",
        "title": f"Story {idx}",
        "url": f"https://news.example/{idx}",
        "importance_score": score,
        "topic_category": category,
    }
    fields.update(kwargs)
    return Candidate(**fields)


def test_dedupe_keeps_first_occurrence_by_url() -> None:
    first = _item(1, 40, url="https://News.example/Same", source="gnews_comprehensive")
    second = _item(2, 90, url="https://news.example/same", source="newsapi_general")
    third = _item(3, 10)

    assert [item.id for item in dedupe([first, second, third])] == ["c1", "c3"]


def test_dedup_key_falls_back_to_title_then_description() -> None:
    by_title = Candidate(id="a", title="Senate Passes Budget")
    by_description = Candidate(id="b", description="Only a description")

    assert dedup_key(by_title) == "senate passes budget"
    assert dedup_key(by_description) == "only a description"
    assert dedupe([by_title, Candidate(id="c", title="senate passes budget")]) == [by_title]


def test_dedup_key_is_truncated() -> None:
    long_url = "https://news.example/" + "x" * 300
    assert len(dedup_key(Candidate(id="a", url=long_url))) == DEDUP_KEY_LENGTH
    # urls that only differ after the key length collapse together
    assert len(dedupe([Candidate(id="a", url=long_url + "1"), Candidate(id="b", url=long_url + "2")])) == 1


def test_dedupe_empty_pool() -> None:
    assert dedupe([]) == []


def test_select_diverse_covers_required_categories_before_score() -> None:
    pool = [_item(idx, 90 - idx) for idx in range(30)]
    minority = [
        TopicCategory.BUSINESS,
        TopicCategory.TECHNOLOGY,
        TopicCategory.INTERNATIONAL,
        TopicCategory.HEALTH,
        TopicCategory.CLIMATE,
    ]
    pool += [_item(100 + idx, 5, category) for idx, category in enumerate(minority)]

    shortlist = select_diverse(pool, max_count=25)

    assert len(shortlist) == 25
    categories = {item.topic_category for item in shortlist}
    assert set(REQUIRED_CATEGORIES) <= categories
    # one slot per required category first, then the best remaining politics stories
    assert [item.id for item in shortlist[:6]] == ["c0", "c100", "c101", "c102", "c103", "c104"]
    assert [item.id for item in shortlist[6:8]] == ["c1", "c2"]


def test_select_diverse_returns_everything_when_pool_is_small() -> None:
    pool = [_item(1, 10), _item(2, 50, TopicCategory.GENERAL), _item(3, 30, TopicCategory.HEALTH)]

    shortlist = select_diverse(pool, max_count=25)

    assert sorted(item.id for item in shortlist) == ["c1", "c2", "c3"]


def test_select_diverse_respects_small_limits() -> None:
    pool = [_item(idx, idx, category) for idx, category in enumerate(REQUIRED_CATEGORIES)]
    assert len(select_diverse(pool, max_count=3)) == 3
    assert select_diverse(pool, max_count=0) == []
    assert select_diverse([], max_count=5) == []


def test_select_diverse_breaks_ties_by_pool_order() -> None:
    pool = [_item(idx, 50, TopicCategory.GENERAL) for idx in range(5)]
    assert [item.id for item in select_diverse(pool, max_count=3, required_categories=())] == ["c0", "c1", "c2"]
