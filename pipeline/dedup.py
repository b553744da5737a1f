"""Cross-provider deduplication of pooled news candidates."""

from __future__ import annotations

from typing import List, Sequence

from core import Candidate


DEDUP_KEY_LENGTH = 100


def dedup_key(candidate: Candidate) -> str:
    """Lower-cased, truncated ``url || title || description``."""
    raw = candidate.url or candidate.title or candidate.description or candidate.id
    return str(raw or "").strip().lower()[:DEDUP_KEY_LENGTH]


def dedupe(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Keep the first occurrence of each key, preserving input order."""
    unique: List[Candidate] = []
    seen = set()
    for candidate in candidates:
        key = dedup_key(candidate)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique
