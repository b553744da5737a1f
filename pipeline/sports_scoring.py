"""Seasonal significance scoring and classification for sports events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from config import ScoringSettings
from core import GameCandidate, GameType
from pipeline.news_scoring import clamp_score, geo_relevance
from pipeline.rules import (
    BLOWOUT_BOOST,
    BLOWOUT_MARGIN,
    CHAMPIONSHIP_BOOSTS,
    DEFAULT_SEASONAL_BASE,
    DEFAULT_SEASONAL_CONTEXT,
    FINAL_BOOST,
    FINAL_STATUS_TERMS,
    GAME_TYPE_RULES,
    LIVE_BOOST,
    LIVE_STATUS_TERMS,
    RIVALRY_BOOST,
    RIVALRY_PAIRS,
    SEASON_OPENER_MONTHS,
    SEASON_OPENER_TERMS,
    SEASONAL_BASE_SCORES,
    SEASONAL_CONTEXT,
    SPORTS_FRONT_PAGE_THRESHOLD,
    matches_any,
)


@dataclass(frozen=True)
class SeasonalTuning:
    """Product-tunable constants for the late-October MLB rule."""

    late_october_mlb_boost: int = 20
    late_october_start_day: int = 15
    followed_team: str = "Dodgers"
    followed_team_boost: int = 15

    @classmethod
    def from_settings(cls, settings: ScoringSettings) -> "SeasonalTuning":
        return cls(
            late_october_mlb_boost=settings.late_october_mlb_boost,
            late_october_start_day=settings.late_october_start_day,
            followed_team=settings.followed_team,
            followed_team_boost=settings.followed_team_boost,
        )


def _game_moment(game: GameCandidate, now: Optional[datetime]) -> datetime:
    moment = game.date or now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _game_text(game: GameCandidate) -> str:
    return game.text.lower()


def seasonal_base_score(league: str, month: int) -> int:
    table = SEASONAL_BASE_SCORES.get(str(league or "").lower())
    if not table or not 1 <= month <= 12:
        return DEFAULT_SEASONAL_BASE
    return table[month - 1]


def seasonal_context(league: str, month: int) -> str:
    table = SEASONAL_CONTEXT.get(str(league or "").lower())
    if not table or not 1 <= month <= 12:
        return DEFAULT_SEASONAL_CONTEXT
    return table[month - 1]


def championship_boost(text: str) -> int:
    """Highest matching postseason boost; overlapping terms do not stack."""
    weights = [rule.weight for rule in CHAMPIONSHIP_BOOSTS if matches_any(text, rule.terms)]
    return max(weights) if weights else 0


def status_boost(status: str) -> int:
    text = str(status or "").lower()
    if matches_any(text, LIVE_STATUS_TERMS):
        return LIVE_BOOST
    if matches_any(text, FINAL_STATUS_TERMS):
        return FINAL_BOOST
    return 0


def is_rivalry(home_team: str, away_team: str) -> bool:
    teams = f"{home_team} | {away_team}".lower()
    return any(matches_any(teams, (left,)) and matches_any(teams, (right,)) for left, right in RIVALRY_PAIRS)


def blowout_boost(home_score: Optional[int], away_score: Optional[int]) -> int:
    if home_score is None or away_score is None:
        return 0
    return BLOWOUT_BOOST if abs(home_score - away_score) >= BLOWOUT_MARGIN else 0


def late_october_boost(game: GameCandidate, moment: datetime, tuning: SeasonalTuning) -> int:
    """MLB games in the back half of October are treated as probable World Series games."""
    if str(game.league or "").lower() != "mlb":
        return 0
    if moment.month != 10 or moment.day < tuning.late_october_start_day:
        return 0
    boost = tuning.late_october_mlb_boost
    if tuning.followed_team and matches_any(_game_text(game), (tuning.followed_team.lower(),)):
        boost += tuning.followed_team_boost
    return boost


def game_score_breakdown(
    game: GameCandidate,
    now: Optional[datetime] = None,
    tuning: Optional[SeasonalTuning] = None,
) -> Dict[str, int]:
    tuning = tuning or SeasonalTuning()
    moment = _game_moment(game, now)
    text = _game_text(game)
    breakdown = {"seasonal_base": seasonal_base_score(game.league, moment.month)}
    parts = {
        "championship": championship_boost(text),
        "status": status_boost(game.status),
        "rivalry": RIVALRY_BOOST if is_rivalry(game.home_team, game.away_team) else 0,
        "blowout": blowout_boost(game.home_score, game.away_score),
        "late_october": late_october_boost(game, moment, tuning),
    }
    breakdown.update({name: value for name, value in parts.items() if value})
    return breakdown


def score_game(
    game: GameCandidate,
    now: Optional[datetime] = None,
    tuning: Optional[SeasonalTuning] = None,
) -> int:
    return clamp_score(sum(game_score_breakdown(game, now, tuning).values()))


def classify_game_type(game: GameCandidate, now: Optional[datetime] = None) -> GameType:
    text = _game_text(game)
    for rule in GAME_TYPE_RULES:
        if matches_any(text, rule.terms):
            return rule.game_type
    if is_rivalry(game.home_team, game.away_team):
        return GameType.RIVALRY
    month = _game_moment(game, now).month
    opener_months = SEASON_OPENER_MONTHS.get(str(game.league or "").lower(), ())
    if month in opener_months and matches_any(text, SEASON_OPENER_TERMS):
        return GameType.SEASON_OPENER
    return GameType.REGULAR


def allocate_sports_spots(game_type: GameType, significance_score: int, status: str = "") -> int:
    if game_type == GameType.CHAMPIONSHIP and significance_score >= 85:
        return 3
    if (
        significance_score >= SPORTS_FRONT_PAGE_THRESHOLD
        or game_type in (GameType.CHAMPIONSHIP, GameType.PLAYOFF)
        or status_boost(status) == LIVE_BOOST
    ):
        return 2
    return 1


def location_relevance(game: GameCandidate) -> Dict[str, int]:
    text = f"{game.home_team} {game.away_team} {game.venue} {game.name}".lower()
    return geo_relevance(text, include_teams=True)


def enhance_game(
    game: GameCandidate,
    now: Optional[datetime] = None,
    tuning: Optional[SeasonalTuning] = None,
) -> GameCandidate:
    moment = _game_moment(game, now)
    significance = score_game(game, now, tuning)
    game_type = classify_game_type(game, now)
    return game.model_copy(
        update={
            "significance_score": significance,
            "game_type": game_type,
            "seasonal_context": seasonal_context(game.league, moment.month),
            "sports_spots": allocate_sports_spots(game_type, significance, game.status),
            "location_relevance": location_relevance(game),
        }
    )
