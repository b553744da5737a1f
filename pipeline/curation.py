"""
AI Curation
从 shortlist 中挑选最终 N 条新闻；模型不可用时退化为按分数排序
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from core import Candidate, CuratedCandidate
from intelligence.llm import BaseLLM, Message
from utils.exceptions import CurationError


logger = logging.getLogger(__name__)

FALLBACK_REASON = "Fallback: High importance score"
MAX_PER_CATEGORY = 3

_CURATION_SYSTEM_PROMPT = """You are the front-page editor of a national morning news briefing.
From the numbered candidate stories, choose exactly {target} stories for today's listeners.

Rules:
- Select exactly {target} distinct stories, referenced by their "index".
- Include at least 1 political/government story, at least 1 economic/business story and at least 1 international story when such stories are available.
- Never select more than {max_per_category} stories from the same topic_category.
- Prefer significance, recency and breadth over sensationalism.
- For every selection write an "enhanced_summary" of 3-4 sentences covering who, what, where, when, why and how, using only facts present in the candidate.
- Give a one-sentence "selection_reason".

Respond with a JSON object only, no prose:
{{"selected_stories": [{{"index": 0, "selection_reason": "...", "enhanced_summary": "..."}}]}}
List selections in rank order, most important first."""


class Ranker(Protocol):
    """Chooses the final curated stories from a shortlist."""

    name: str

    async def rank(self, shortlist: Sequence[Candidate], target_count: int) -> List[CuratedCandidate]:
        ...


def _curated(candidate: Candidate, rank: int, reason: str, summary: str) -> CuratedCandidate:
    payload = candidate.model_dump()
    payload.update(
        ai_rank=rank,
        selection_reason=reason,
        enhanced_summary=summary or candidate.description or candidate.title,
    )
    return CuratedCandidate(**payload)


def top_by_score(candidates: Sequence[Candidate], count: int) -> List[Candidate]:
    # stable: ties keep shortlist order
    return sorted(candidates, key=lambda item: item.importance_score, reverse=True)[: max(0, count)]


class ScoreRanker:
    """Deterministic fallback: highest importance_score first."""

    name = "fallback"

    async def rank(self, shortlist: Sequence[Candidate], target_count: int) -> List[CuratedCandidate]:
        return [
            _curated(candidate, rank, FALLBACK_REASON, "")
            for rank, candidate in enumerate(top_by_score(shortlist, target_count), 1)
        ]


def _format_shortlist(shortlist: Sequence[Candidate]) -> str:
    rows = []
    for idx, candidate in enumerate(shortlist):
        rows.append(
            {
                "index": idx,
                "title": candidate.title,
                "description": candidate.description[:500],
                "source": candidate.source_name,
                "importance_score": candidate.importance_score,
                "topic_category": candidate.topic_category.value,
                "geographic_scope": candidate.geographic_scope.value,
                "publishedAt": candidate.published_at.isoformat() if candidate.published_at else None,
            }
        )
    return json.dumps(rows, ensure_ascii=False, indent=1)


def extract_json_object(text: str) -> Dict[str, Any]:
    """解析模型输出；兼容 ```json 代码块和前后多余文字"""
    raw = (text or "").strip()
    if not raw:
        return {}
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", raw)
    if fenced:
        raw = fenced.group(1).strip()
    try:
        parsed = json.loads(raw)
        return parsed if isinstance(parsed, dict) else {}
    except Exception:
        pass
    match = re.search(r"\{[\s\S]*\}", raw)
    if not match:
        return {}
    try:
        parsed = json.loads(match.group())
        return parsed if isinstance(parsed, dict) else {}
    except Exception:
        return {}


class LLMRanker:
    """Primary ranker: one JSON-only chat completion per run."""

    name = "ai"

    def __init__(
        self,
        llm: BaseLLM,
        *,
        max_per_category: int = MAX_PER_CATEGORY,
        timeout: Optional[float] = None,
    ):
        self.llm = llm
        self.max_per_category = max(1, int(max_per_category))
        self.timeout = timeout

    def build_messages(self, shortlist: Sequence[Candidate], target_count: int) -> List[Message]:
        system_prompt = _CURATION_SYSTEM_PROMPT.format(
            target=target_count,
            max_per_category=self.max_per_category,
        )
        user_prompt = (
            f"Candidate stories ({len(shortlist)}):\n"
            f"{_format_shortlist(shortlist)}\n\n"
            f"Return exactly {target_count} selections as JSON."
        )
        return [Message.system(system_prompt), Message.user(user_prompt)]

    def parse_selections(
        self,
        content: str,
        shortlist: Sequence[Candidate],
        target_count: int,
    ) -> List[CuratedCandidate]:
        parsed = extract_json_object(content)
        selections = parsed.get("selected_stories")
        if not isinstance(selections, list):
            raise CurationError("model response has no selected_stories list")

        curated: List[CuratedCandidate] = []
        seen = set()
        per_category: Dict[str, int] = {}
        for item in selections:
            if len(curated) >= target_count:
                break
            if not isinstance(item, dict):
                continue
            try:
                index = int(item.get("index"))
            except (TypeError, ValueError):
                continue
            if index < 0 or index >= len(shortlist) or index in seen:
                continue
            candidate = shortlist[index]
            category = candidate.topic_category.value
            if per_category.get(category, 0) >= self.max_per_category:
                continue
            seen.add(index)
            per_category[category] = per_category.get(category, 0) + 1
            curated.append(
                _curated(
                    candidate,
                    len(curated) + 1,
                    str(item.get("selection_reason") or "").strip(),
                    str(item.get("enhanced_summary") or "").strip(),
                )
            )

        if not curated:
            raise CurationError("model response contained no usable selections")
        return curated

    async def rank(self, shortlist: Sequence[Candidate], target_count: int) -> List[CuratedCandidate]:
        messages = self.build_messages(shortlist, target_count)
        call = self.llm.acomplete(messages, json_mode=True)
        if self.timeout:
            response = await asyncio.wait_for(call, timeout=self.timeout)
        else:
            response = await call
        return self.parse_selections(response.content, shortlist, target_count)


@dataclass
class CurationResult:
    items: List[CuratedCandidate]
    method: str
    error: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.method != "ai"


def _top_up(
    curated: List[CuratedCandidate],
    shortlist: Sequence[Candidate],
    target_count: int,
) -> List[CuratedCandidate]:
    """Fill a short model answer with the best unselected candidates."""
    chosen = {item.id for item in curated}
    remaining = [candidate for candidate in shortlist if candidate.id not in chosen]
    missing = target_count - len(curated)
    result = list(curated)
    for candidate in top_by_score(remaining, missing):
        result.append(_curated(candidate, len(result) + 1, FALLBACK_REASON, ""))
    return result


async def curate(
    shortlist: Sequence[Candidate],
    target_count: int = 10,
    ranker: Optional[Ranker] = None,
    fallback: Optional[Ranker] = None,
) -> CurationResult:
    """
    选出最终 min(target_count, len(shortlist)) 条

    Never raises: any ranker failure degrades to ``fallback``.
    """
    target = min(max(0, int(target_count)), len(shortlist))
    fallback = fallback or ScoreRanker()
    if target == 0:
        return CurationResult(items=[], method=fallback.name)

    if ranker is not None:
        try:
            curated = await ranker.rank(shortlist, target)
            if len(curated) >= target:
                return CurationResult(items=curated[:target], method=ranker.name)
            logger.warning(
                f"[curation] {ranker.name} returned {len(curated)}/{target} stories; topping up by score"
            )
            return CurationResult(
                items=_top_up(curated, shortlist, target),
                method=f"{ranker.name}+{fallback.name}",
            )
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.warning(f"[curation] {ranker.name} ranker failed, using fallback: {error}")
    else:
        error = None

    try:
        items = await fallback.rank(shortlist, target)
    except Exception as exc:
        logger.error(f"[curation] fallback ranker failed: {exc}")
        items = await ScoreRanker().rank(shortlist, target)
    return CurationResult(items=items[:target], method=fallback.name, error=error)
