"""Greedy, category-balanced shortlist selection."""

from __future__ import annotations

from typing import List, Sequence, Set

from core import Candidate, TopicCategory


REQUIRED_CATEGORIES = (
    TopicCategory.POLITICS,
    TopicCategory.BUSINESS,
    TopicCategory.TECHNOLOGY,
    TopicCategory.INTERNATIONAL,
    TopicCategory.HEALTH,
    TopicCategory.CLIMATE,
)


def _by_score(candidates: Sequence[Candidate]) -> List[Candidate]:
    # sorted() is stable, so equal scores keep pool order
    return sorted(candidates, key=lambda item: item.importance_score, reverse=True)


def select_diverse(
    candidates: Sequence[Candidate],
    max_count: int = 25,
    required_categories: Sequence[TopicCategory] = REQUIRED_CATEGORIES,
) -> List[Candidate]:
    """
    Reduce ``candidates`` to at most ``max_count`` items.

    First the best unused candidate of each required category (when present),
    then the globally highest-scoring remainder regardless of category.
    """
    limit = max(0, int(max_count))
    if limit == 0 or not candidates:
        return []

    ranked = _by_score(candidates)
    selected: List[Candidate] = []
    used: Set[int] = set()

    for category in required_categories:
        if len(selected) >= limit:
            break
        for idx, candidate in enumerate(ranked):
            if idx in used or candidate.topic_category != category:
                continue
            selected.append(candidate)
            used.add(idx)
            break

    for idx, candidate in enumerate(ranked):
        if len(selected) >= limit:
            break
        if idx in used:
            continue
        selected.append(candidate)
        used.add(idx)

    return selected
