"""Versioned rule tables for scoring and classification.

Every scoring function in ``pipeline.news_scoring`` and
``pipeline.sports_scoring`` is a pure function over (text, rule table).
Classification tables are ordered tuples: the first matching rule wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import re
from typing import Dict, Iterable, Pattern, Sequence, Tuple

from core import GameType, GeographicScope, TopicCategory


RULES_VERSION = "2025.10.1"


@lru_cache(maxsize=512)
def _compile(terms: Tuple[str, ...]) -> Pattern[str]:
    alternatives = "|".join(re.escape(term.lower()) for term in sorted(terms, key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})s?(?![a-z0-9])")


def matches_any(text: str, terms: Sequence[str]) -> bool:
    """Case-insensitive whole-word match (a trailing plural 's' is tolerated)."""
    if not terms:
        return False
    return _compile(tuple(terms)).search(str(text or "").lower()) is not None


def matched_terms(text: str, terms: Iterable[str]) -> Tuple[str, ...]:
    lowered = str(text or "").lower()
    return tuple(term for term in terms if _compile((term,)).search(lowered))


@dataclass(frozen=True)
class KeywordRule:
    """A keyword group worth ``weight`` points when any of its terms appears."""

    name: str
    weight: int
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class CategoryRule:
    category: TopicCategory
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class ScopeRule:
    scope: GeographicScope
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class GameTypeRule:
    game_type: GameType
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class SourceTier:
    name: str
    points: int
    outlets: Tuple[str, ...]


@dataclass(frozen=True)
class MetroProfile:
    """Local vocabulary for one US metro area."""

    metro_id: str
    cities: Tuple[str, ...]
    local_keywords: Tuple[str, ...]
    states: Tuple[str, ...]
    teams: Tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# News: source authority
# ---------------------------------------------------------------------------

SOURCE_TIERS: Tuple[SourceTier, ...] = (
    SourceTier("wire", 10, ("reuters", "associated press", "ap", "ap news", "bloomberg", "afp", "agence france-presse")),
    SourceTier(
        "major_national",
        8,
        (
            "the new york times",
            "new york times",
            "the washington post",
            "washington post",
            "the wall street journal",
            "wall street journal",
            "usa today",
            "los angeles times",
            "financial times",
            "politico",
            "axios",
            "npr",
            "the hill",
        ),
    ),
    SourceTier(
        "major_broadcast",
        6,
        ("cnn", "nbc news", "abc news", "cbs news", "fox news", "msnbc", "bbc", "bbc news", "pbs", "pbs newshour"),
    ),
)
DEFAULT_SOURCE_POINTS = 3


# ---------------------------------------------------------------------------
# News: keyword weights (independent, additive)
# ---------------------------------------------------------------------------

NEWS_KEYWORD_WEIGHTS: Tuple[KeywordRule, ...] = (
    KeywordRule("elections", 20, ("election", "vote", "ballot")),
    KeywordRule("economy", 15, ("economy", "recession", "inflation", "unemployment")),
    KeywordRule("conflict", 15, ("war", "conflict", "crisis", "attack")),
    KeywordRule("supreme_court", 12, ("supreme court", "constitutional")),
    KeywordRule("federal_reserve", 12, ("federal reserve", "interest rate")),
    KeywordRule(
        "climate_disaster",
        10,
        ("hurricane", "wildfire", "earthquake", "tornado", "flood", "flooding", "tsunami", "heat wave", "drought"),
    ),
    KeywordRule("government", 8, ("president", "congress", "senate", "house")),
    KeywordRule("markets", 8, ("market", "stock", "trading")),
    KeywordRule("technology", 6, ("ai", "artificial intelligence", "technology")),
    KeywordRule("health", 7, ("health", "pandemic")),
    KeywordRule("big_numbers", 5, ("billion", "trillion")),
    KeywordRule("deals", 4, ("merger", "acquisition", "ipo")),
    KeywordRule("earnings", 3, ("earnings", "revenue", "profit")),
    KeywordRule("policy", 6, ("bill", "law", "policy", "regulation")),
    KeywordRule("legal", 5, ("investigation", "indictment", "lawsuit")),
    KeywordRule("breaking", 8, ("breaking", "urgent")),
    KeywordRule("developing", 4, ("developing", "live", "update")),
)

# (max age in hours, bonus); first bracket that fits wins
RECENCY_BONUS: Tuple[Tuple[float, int], ...] = ((1.0, 10), (6.0, 5), (12.0, 2))


# ---------------------------------------------------------------------------
# News: topic category, fixed priority order
# ---------------------------------------------------------------------------

CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        TopicCategory.POLITICS,
        (
            "election", "vote", "ballot", "congress", "senate", "house", "president", "white house",
            "democrat", "republican", "campaign", "governor", "lawmaker", "legislation", "supreme court",
            "impeachment", "gop",
        ),
    ),
    CategoryRule(
        TopicCategory.BUSINESS,
        (
            "economy", "market", "stock", "federal reserve", "interest rate", "inflation", "recession",
            "unemployment", "earnings", "revenue", "profit", "merger", "acquisition", "ipo", "wall street",
            "tariff", "jobs report", "bank", "dow", "nasdaq", "s&p 500",
        ),
    ),
    CategoryRule(
        TopicCategory.TECHNOLOGY,
        (
            "technology", "tech", "ai", "artificial intelligence", "software", "openai", "apple", "google",
            "microsoft", "nvidia", "semiconductor", "chip", "cybersecurity", "hacker", "startup", "smartphone",
        ),
    ),
    CategoryRule(
        TopicCategory.HEALTH,
        (
            "health", "pandemic", "covid", "vaccine", "disease", "hospital", "medical", "cancer", "fda",
            "virus", "outbreak", "cdc", "medicare", "medicaid",
        ),
    ),
    CategoryRule(
        TopicCategory.CLIMATE,
        (
            "climate", "hurricane", "wildfire", "earthquake", "flood", "flooding", "tornado", "heat wave",
            "drought", "emissions", "carbon", "environment", "storm",
        ),
    ),
    CategoryRule(
        TopicCategory.SPORTS,
        (
            "nfl", "nba", "mlb", "nhl", "mls", "soccer", "football", "basketball", "baseball", "hockey",
            "olympics", "super bowl", "world series", "playoff", "quarterback",
        ),
    ),
    CategoryRule(
        TopicCategory.INTERNATIONAL,
        (
            "ukraine", "russia", "china", "israel", "gaza", "iran", "europe", "european union", "united nations",
            "nato", "india", "japan", "north korea", "south korea", "mexico", "canada", "global", "international",
            "foreign", "overseas",
        ),
    ),
)


# ---------------------------------------------------------------------------
# News: geographic scope, fixed priority order (default national)
# ---------------------------------------------------------------------------

SCOPE_RULES: Tuple[ScopeRule, ...] = (
    ScopeRule(
        GeographicScope.INTERNATIONAL,
        (
            "ukraine", "russia", "china", "israel", "gaza", "iran", "europe", "european union", "united kingdom",
            "britain", "france", "germany", "india", "japan", "north korea", "south korea", "mexico", "canada",
            "brazil", "united nations", "nato", "global", "worldwide", "international",
        ),
    ),
    ScopeRule(
        GeographicScope.STATE,
        (
            "california", "texas", "florida", "new york", "illinois", "pennsylvania", "ohio", "georgia",
            "michigan", "arizona", "los angeles", "chicago", "houston", "phoenix", "philadelphia",
            "san francisco", "seattle", "miami", "atlanta", "boston", "denver",
        ),
    ),
    ScopeRule(
        GeographicScope.NATIONAL,
        ("federal", "congress", "senate", "white house", "president", "supreme court", "nationwide", "government"),
    ),
)
DEFAULT_SCOPE = GeographicScope.NATIONAL


# ---------------------------------------------------------------------------
# News: editorial weight and spot allocation
# ---------------------------------------------------------------------------

FRONT_PAGE_THRESHOLD = 70
PAGE_3_THRESHOLD = 40

FRONT_PAGE_OVERRIDES: Tuple[str, ...] = (
    "breaking",
    "urgent",
    "live update",
    "declares war",
    "nuclear",
    "assassination",
    "mass shooting",
    "election results",
    "stock market crash",
    "major earthquake",
    "hurricane landfall",
    "tsunami warning",
    "catastrophic flooding",
    "landmark ruling",
    "supreme court strikes down",
    "supreme court overturns",
)

PAGE_3_OVERRIDES: Tuple[str, ...] = (
    "congress passes",
    "senate passes",
    "house passes",
    "senate votes",
    "house votes",
    "congressional vote",
    "fed raises",
    "fed cuts",
    "federal reserve raises",
    "federal reserve cuts",
    "rate hike",
    "rate cut",
    "quarterly earnings",
    "record earnings",
    "earnings beat",
    "earnings miss",
    "under investigation",
    "indicted",
    "indictment",
)

GENERATIONAL_EVENTS: Tuple[str, ...] = (
    "declares war",
    "world war",
    "assassination",
    "assassinated",
    "nuclear attack",
    "nuclear strike",
    "terrorist attack",
    "stock market crash",
    "pandemic declared",
    "president dies",
    "impeached",
    "coup",
    "election results",
)
GENERATIONAL_MIN_SCORE = 85

DOUBLE_SPOT_KEYWORDS: Tuple[str, ...] = (
    "breaking",
    "federal reserve",
    "fed raises",
    "fed cuts",
    "rate hike",
    "rate cut",
    "hurricane",
    "earthquake",
    "wildfire",
    "tsunami",
    "natural disaster",
    "election certified",
    "certifies election",
    "election certification",
)


# ---------------------------------------------------------------------------
# Metro dictionaries (news geo relevance and sports location relevance)
# ---------------------------------------------------------------------------

CITY_POINTS = 10
LOCAL_KEYWORD_POINTS = 5
STATE_POINTS = 2
METRO_SCORE_CAP = 20

METRO_PROFILES: Tuple[MetroProfile, ...] = (
    MetroProfile("new_york", ("new york city", "nyc", "manhattan", "brooklyn"), ("queens", "bronx", "staten island", "wall street", "mta"), ("new york", "new jersey"), ("yankees", "mets", "knicks", "nets", "giants", "jets", "rangers", "islanders", "nycfc")),
    MetroProfile("los_angeles", ("los angeles", "l.a."), ("hollywood", "santa monica", "long beach", "pasadena", "orange county"), ("california",), ("lakers", "clippers", "dodgers", "angels", "rams", "chargers", "kings", "ducks", "galaxy", "lafc")),
    MetroProfile("chicago", ("chicago",), ("cook county", "o'hare", "evanston", "naperville"), ("illinois",), ("bears", "bulls", "cubs", "white sox", "blackhawks", "fire")),
    MetroProfile("houston", ("houston",), ("harris county", "galveston", "sugar land"), ("texas",), ("texans", "rockets", "astros", "dynamo")),
    MetroProfile("phoenix", ("phoenix",), ("scottsdale", "tempe", "mesa", "maricopa county"), ("arizona",), ("suns", "cardinals", "diamondbacks", "coyotes")),
    MetroProfile("philadelphia", ("philadelphia", "philly"), ("camden", "delaware county", "septa"), ("pennsylvania",), ("eagles", "76ers", "sixers", "phillies", "flyers", "union")),
    MetroProfile("san_antonio", ("san antonio",), ("bexar county", "alamo"), ("texas",), ("spurs",)),
    MetroProfile("san_diego", ("san diego",), ("la jolla", "chula vista", "carlsbad"), ("california",), ("padres", "san diego fc")),
    MetroProfile("dallas", ("dallas", "fort worth"), ("arlington", "plano", "irving", "dfw"), ("texas",), ("cowboys", "mavericks", "rangers", "stars", "fc dallas")),
    MetroProfile("san_francisco", ("san francisco", "oakland", "san jose"), ("bay area", "silicon valley", "berkeley", "palo alto"), ("california",), ("49ers", "warriors", "giants", "athletics", "sharks", "earthquakes")),
    MetroProfile("austin", ("austin",), ("travis county", "round rock"), ("texas",), ("austin fc",)),
    MetroProfile("seattle", ("seattle",), ("tacoma", "bellevue", "king county", "puget sound"), ("washington state",), ("seahawks", "mariners", "kraken", "sounders", "storm")),
    MetroProfile("denver", ("denver",), ("boulder", "aurora", "front range"), ("colorado",), ("broncos", "nuggets", "rockies", "avalanche", "rapids")),
    MetroProfile("washington_dc", ("washington, d.c.", "washington dc", "d.c."), ("capitol hill", "arlington", "northern virginia", "montgomery county"), ("maryland", "virginia"), ("commanders", "wizards", "nationals", "capitals", "d.c. united")),
    MetroProfile("boston", ("boston",), ("cambridge", "somerville", "logan airport", "mbta"), ("massachusetts",), ("patriots", "celtics", "red sox", "bruins", "revolution")),
    MetroProfile("atlanta", ("atlanta",), ("fulton county", "marietta", "hartsfield"), ("georgia",), ("falcons", "hawks", "braves", "atlanta united")),
    MetroProfile("miami", ("miami",), ("miami-dade", "fort lauderdale", "broward", "palm beach"), ("florida",), ("dolphins", "heat", "marlins", "panthers", "inter miami")),
    MetroProfile("detroit", ("detroit",), ("dearborn", "ann arbor", "wayne county"), ("michigan",), ("lions", "pistons", "tigers", "red wings")),
    MetroProfile("minneapolis", ("minneapolis", "st. paul", "saint paul"), ("twin cities", "bloomington", "hennepin county"), ("minnesota",), ("vikings", "timberwolves", "twins", "wild", "minnesota united")),
    MetroProfile("tampa", ("tampa", "st. petersburg"), ("clearwater", "hillsborough county", "tampa bay"), ("florida",), ("buccaneers", "rays", "lightning")),
)


# ---------------------------------------------------------------------------
# Sports: seasonal base scores, league x month (Jan..Dec)
# ---------------------------------------------------------------------------

SEASONAL_BASE_SCORES: Dict[str, Tuple[int, ...]] = {
    "nfl": (45, 50, 10, 15, 8, 5, 5, 15, 35, 35, 38, 42),
    "nba": (25, 25, 28, 38, 42, 48, 10, 5, 5, 25, 22, 28),
    "mlb": (5, 8, 20, 30, 20, 20, 22, 25, 30, 50, 15, 5),
    "nhl": (20, 20, 22, 32, 38, 42, 5, 5, 8, 20, 18, 20),
    "mls": (5, 10, 18, 18, 18, 18, 20, 20, 22, 28, 32, 30),
}
DEFAULT_SEASONAL_BASE = 15

SEASONAL_CONTEXT: Dict[str, Tuple[str, ...]] = {
    "nfl": (
        "playoffs", "super_bowl", "offseason", "draft", "offseason", "offseason",
        "training_camp", "preseason", "season_opening", "regular_season", "regular_season", "playoff_race",
    ),
    "nba": (
        "regular_season", "all_star_break", "playoff_race", "playoffs", "conference_finals", "finals",
        "offseason", "offseason", "offseason", "season_opening", "regular_season", "regular_season",
    ),
    "mlb": (
        "offseason", "spring_training", "spring_training", "opening_month", "regular_season", "regular_season",
        "all_star_break", "regular_season", "pennant_race", "postseason", "offseason", "offseason",
    ),
    "nhl": (
        "regular_season", "regular_season", "playoff_race", "playoffs", "playoffs", "stanley_cup_final",
        "offseason", "offseason", "preseason", "season_opening", "regular_season", "regular_season",
    ),
    "mls": (
        "offseason", "preseason", "season_opening", "regular_season", "regular_season", "regular_season",
        "regular_season", "regular_season", "regular_season", "playoff_race", "playoffs", "mls_cup",
    ),
}
DEFAULT_SEASONAL_CONTEXT = "regular_season"

SEASON_OPENER_MONTHS: Dict[str, Tuple[int, ...]] = {
    "nfl": (9,),
    "nba": (10,),
    "mlb": (3, 4),
    "nhl": (10,),
    "mls": (2, 3),
}
SEASON_OPENER_TERMS: Tuple[str, ...] = ("opening day", "opening night", "season opener", "home opener", "opener")


# ---------------------------------------------------------------------------
# Sports: boosts
# ---------------------------------------------------------------------------

# Overlapping terms ("conference championship" / "championship") are not stacked:
# the highest matching boost applies.
CHAMPIONSHIP_BOOSTS: Tuple[KeywordRule, ...] = (
    KeywordRule("super_bowl", 50, ("super bowl",)),
    KeywordRule("world_series", 40, ("world series",)),
    KeywordRule("finals", 35, ("finals", "stanley cup final", "mls cup")),
    KeywordRule("conference_championship", 30, ("conference championship", "conference finals")),
    KeywordRule("championship", 30, ("championship",)),
    KeywordRule("playoff", 25, ("playoff", "postseason")),
    KeywordRule("division_series", 25, ("division series", "championship series", "alds", "nlds", "alcs", "nlcs")),
    KeywordRule("wild_card", 20, ("wild card", "wildcard")),
)

# Keyword-driven game types, first match wins. Round names that contain
# "championship"/"finals" are listed ahead of the title-game rule.
GAME_TYPE_RULES: Tuple[GameTypeRule, ...] = (
    GameTypeRule(
        GameType.PLAYOFF,
        ("conference finals", "conference championship", "championship series", "division series"),
    ),
    GameTypeRule(
        GameType.CHAMPIONSHIP,
        ("super bowl", "world series", "finals", "stanley cup final", "mls cup", "championship"),
    ),
    GameTypeRule(
        GameType.PLAYOFF,
        ("playoff", "postseason", "wild card", "wildcard", "alds", "nlds", "alcs", "nlcs"),
    ),
)

LIVE_STATUS_TERMS: Tuple[str, ...] = ("status_in_progress", "in progress", "live", "halftime", "status_halftime", "1h", "2h")
FINAL_STATUS_TERMS: Tuple[str, ...] = ("status_final", "final", "match finished", "ft", "aot", "aet")
LIVE_BOOST = 10
FINAL_BOOST = 5

RIVALRY_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("yankees", "red sox"),
    ("dodgers", "giants"),
    ("dodgers", "padres"),
    ("cubs", "cardinals"),
    ("cubs", "white sox"),
    ("lakers", "celtics"),
    ("lakers", "clippers"),
    ("knicks", "nets"),
    ("celtics", "76ers"),
    ("cowboys", "eagles"),
    ("cowboys", "commanders"),
    ("packers", "bears"),
    ("steelers", "ravens"),
    ("chiefs", "raiders"),
    ("49ers", "seahawks"),
    ("patriots", "jets"),
    ("bruins", "canadiens"),
    ("rangers", "islanders"),
    ("penguins", "flyers"),
    ("la galaxy", "lafc"),
    ("sounders", "timbers"),
)
RIVALRY_BOOST = 15

BLOWOUT_MARGIN = 20
BLOWOUT_BOOST = 10

SPORTS_FRONT_PAGE_THRESHOLD = 70
