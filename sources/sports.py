"""Sports schedule adapters: ESPN scoreboards and TheSportsDB events of the day."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from core import ContentType, GameCandidate
from utils.exceptions import FetchError, ProviderResponseError
from .base import BaseSourceAdapter, SourceBatch, as_list, coalesce_text, parse_datetime, stable_id
from .http import SourceHttp


logger = logging.getLogger(__name__)

_ESPN_SCOREBOARD = "https://site.api.espn.com/apis/site/v2/sports/{sport}/{league}/scoreboard"
_THESPORTSDB_EVENTS_DAY = "https://www.thesportsdb.com/api/v1/json/{key}/eventsday.php"

ESPN_SPORT_PATHS = {
    "nba": ("basketball", "nba"),
    "nfl": ("football", "nfl"),
    "mlb": ("baseball", "mlb"),
    "nhl": ("hockey", "nhl"),
    "mls": ("soccer", "usa.1"),
}

_LEAGUE_ALIASES = {
    "nba": "nba",
    "national basketball association": "nba",
    "nfl": "nfl",
    "national football league": "nfl",
    "mlb": "mlb",
    "major league baseball": "mlb",
    "nhl": "nhl",
    "national hockey league": "nhl",
    "mls": "mls",
    "american major league soccer": "mls",
    "major league soccer": "mls",
}


def normalize_league(value: Any) -> str:
    text = str(value or "").strip().lower()
    return _LEAGUE_ALIASES.get(text, text)


def map_espn_event(raw: Dict[str, Any], league: str, source: str = "espn") -> Optional[GameCandidate]:
    name = str(raw.get("name") or raw.get("shortName") or "").strip()
    if not name:
        return None

    competitions = as_list(raw.get("competitions"))
    competition = competitions[0] if competitions else {}
    home: Dict[str, Any] = {}
    away: Dict[str, Any] = {}
    for competitor in as_list(competition.get("competitors")):
        if competitor.get("homeAway") == "home":
            home = competitor
        elif competitor.get("homeAway") == "away":
            away = competitor

    notes = [str(note.get("headline") or "").strip() for note in as_list(competition.get("notes"))]
    status = raw.get("status") if isinstance(raw.get("status"), dict) else {}
    status_type = status.get("type") if isinstance(status.get("type"), dict) else {}
    venue = competition.get("venue") if isinstance(competition.get("venue"), dict) else {}

    def _team(entry: Dict[str, Any]) -> str:
        team = entry.get("team") if isinstance(entry.get("team"), dict) else {}
        return coalesce_text(team.get("displayName"), team.get("name"))

    event_id = str(raw.get("id") or "").strip()
    return GameCandidate(
        id=f"espn:{league}:{event_id}" if event_id else stable_id(name, raw.get("date")),
        name=name,
        description="; ".join(note for note in notes if note),
        league=league,
        sport=ESPN_SPORT_PATHS.get(league, ("", ""))[0],
        home_team=_team(home),
        away_team=_team(away),
        home_score=home.get("score"),
        away_score=away.get("score"),
        status=coalesce_text(status_type.get("name"), status_type.get("description")),
        date=parse_datetime(raw.get("date")),
        venue=str(venue.get("fullName") or "").strip(),
        source_name=source,
    )


def map_thesportsdb_event(raw: Dict[str, Any], source: str = "thesportsdb") -> Optional[GameCandidate]:
    name = str(raw.get("strEvent") or "").strip()
    if not name:
        return None
    date_text = str(raw.get("strTimestamp") or "").strip()
    if not date_text:
        date_text = " ".join(part for part in (raw.get("dateEvent"), raw.get("strTime")) if part)
    event_id = str(raw.get("idEvent") or "").strip()
    return GameCandidate(
        id=f"thesportsdb:{event_id}" if event_id else stable_id(name, date_text),
        name=name,
        description=str(raw.get("strDescriptionEN") or "").strip()[:300],
        league=normalize_league(raw.get("strLeague")),
        sport=str(raw.get("strSport") or "").strip().lower(),
        home_team=str(raw.get("strHomeTeam") or "").strip(),
        away_team=str(raw.get("strAwayTeam") or "").strip(),
        home_score=raw.get("intHomeScore"),
        away_score=raw.get("intAwayScore"),
        status=str(raw.get("strStatus") or "").strip(),
        date=parse_datetime(date_text),
        venue=str(raw.get("strVenue") or "").strip(),
        source_name=source,
    )


class ESPNAdapter(BaseSourceAdapter[GameCandidate]):
    """Public ESPN scoreboards; one request per league, joined together."""

    def __init__(self, leagues: Sequence[str], *, max_results: int = 15):
        self.leagues = [league for league in (normalize_league(item) for item in leagues) if league in ESPN_SPORT_PATHS]
        self.max_results = max_results

    @property
    def name(self) -> str:
        return "espn"

    @property
    def content_type(self) -> ContentType:
        return ContentType.SPORTS

    def is_configured(self) -> bool:
        return bool(self.leagues)

    async def _fetch_league(self, http: SourceHttp, league: str) -> List[GameCandidate]:
        sport, path = ESPN_SPORT_PATHS[league]
        data = await http.get_json(
            _ESPN_SCOREBOARD.format(sport=sport, league=path),
            source=f"{self.name}:{league}",
        )
        if not isinstance(data, dict):
            raise ProviderResponseError(f"ESPN {league}: unexpected payload", source=self.name)
        games: List[GameCandidate] = []
        for raw in as_list(data.get("events")):
            game = map_espn_event(raw, league, self.name)
            if game is not None:
                games.append(game)
        return games

    async def fetch(self, http: SourceHttp) -> SourceBatch[GameCandidate]:
        results = await asyncio.gather(
            *(self._fetch_league(http, league) for league in self.leagues),
            return_exceptions=True,
        )
        games: List[GameCandidate] = []
        failures: List[str] = []
        for league, result in zip(self.leagues, results):
            if isinstance(result, BaseException):
                failures.append(f"{league}: {result}")
                logger.warning(f"[{self.name}] league {league} failed: {result}")
                continue
            games.extend(result)

        if failures and len(failures) == len(self.leagues):
            raise FetchError(f"ESPN failed for every league ({'; '.join(failures)})", source=self.name)

        games = games[: self.max_results * max(1, len(self.leagues))]
        self._log_fetch(len(games))
        return SourceBatch(source=self.name, content_type=self.content_type, items=games, total_results=len(games))


class TheSportsDBAdapter(BaseSourceAdapter[GameCandidate]):
    required_env = ("SPORTS_THESPORTSDB_API_KEY",)

    def __init__(
        self,
        api_key: Optional[str],
        *,
        max_results: int = 15,
        today: Optional[Callable[[], datetime]] = None,
    ):
        self.api_key = api_key
        self.max_results = max_results
        self._today = today or (lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return "thesportsdb"

    @property
    def content_type(self) -> ContentType:
        return ContentType.SPORTS

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, http: SourceHttp) -> SourceBatch[GameCandidate]:
        day = self._today().date().isoformat()
        data = await http.get_json(
            _THESPORTSDB_EVENTS_DAY.format(key=self.api_key),
            source=self.name,
            params={"d": day},
        )
        if not isinstance(data, dict):
            raise ProviderResponseError("TheSportsDB: unexpected payload", source=self.name)

        games: List[GameCandidate] = []
        for raw in as_list(data.get("events")):
            game = map_thesportsdb_event(raw, self.name)
            if game is None:
                continue
            games.append(game)
            if len(games) >= self.max_results:
                break
        self._log_fetch(len(games))
        return SourceBatch(source=self.name, content_type=self.content_type, items=games, total_results=len(games))
