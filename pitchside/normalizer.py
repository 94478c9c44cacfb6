"""
Upstream normalization.

Converts provider payloads (football-data.org, API-Football, The Odds API)
into the canonical records used everywhere downstream of ingestion. The UI
and the cache only ever see these shapes, never raw provider JSON.
"""
import logging
import random
import string
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from pitchside.errors import MalformedRecord
from pitchside.utils.helpers import safe_int, safe_str, to_naive_utc

logger = logging.getLogger("normalizer")

T = TypeVar("T")

DEFAULT_HOME_NAME = "Home Team"
DEFAULT_AWAY_NAME = "Away Team"
DEFAULT_VENUE = "TBD"
DEFAULT_COMPETITION_NAME = "Unknown League"


class ProviderKind(Enum):
    """Upstream sources we normalize from."""
    FOOTBALL_DATA = "football_data"   # competitions, scheduled matches, standings
    API_FOOTBALL = "api_football"     # fixtures by date, head-to-head, predictions
    ODDS_API = "odds_api"             # sports list, event odds


class MatchStatus(Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    NOT_FOUND = "NOT_FOUND"


class CompetitionKind(Enum):
    LEAGUE = "LEAGUE"
    CUP = "CUP"


# football-data.org status vocabulary
FOOTBALL_DATA_STATUS = {
    "SCHEDULED": MatchStatus.SCHEDULED,
    "TIMED": MatchStatus.SCHEDULED,
    "IN_PLAY": MatchStatus.LIVE,
    "PAUSED": MatchStatus.LIVE,
    "LIVE": MatchStatus.LIVE,
    "EXTRA_TIME": MatchStatus.LIVE,
    "PENALTY_SHOOTOUT": MatchStatus.LIVE,
    "FINISHED": MatchStatus.FINISHED,
    "AWARDED": MatchStatus.FINISHED,
    "POSTPONED": MatchStatus.POSTPONED,
    "SUSPENDED": MatchStatus.POSTPONED,
    "CANCELLED": MatchStatus.POSTPONED,
}

# API-Football fixture.status.short vocabulary
API_FOOTBALL_STATUS = {
    "TBD": MatchStatus.SCHEDULED,
    "NS": MatchStatus.SCHEDULED,
    "1H": MatchStatus.LIVE,
    "HT": MatchStatus.LIVE,
    "2H": MatchStatus.LIVE,
    "ET": MatchStatus.LIVE,
    "BT": MatchStatus.LIVE,
    "P": MatchStatus.LIVE,
    "LIVE": MatchStatus.LIVE,
    "INT": MatchStatus.LIVE,
    "FT": MatchStatus.FINISHED,
    "AET": MatchStatus.FINISHED,
    "PEN": MatchStatus.FINISHED,
    "AWD": MatchStatus.FINISHED,
    "WO": MatchStatus.FINISHED,
    "PST": MatchStatus.POSTPONED,
    "CANC": MatchStatus.POSTPONED,
    "ABD": MatchStatus.POSTPONED,
    "SUSP": MatchStatus.POSTPONED,
}


# =============================================================================
# CANONICAL RECORDS
# =============================================================================

@dataclass
class TeamRef:
    """A team as referenced from a match."""
    id: Optional[int]
    name: str
    crest_url: str = ""


@dataclass
class Competition:
    code: str
    name: str
    emblem: str = ""
    kind: CompetitionKind = CompetitionKind.LEAGUE
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "emblem": self.emblem,
            "kind": self.kind.value,
        }


@dataclass
class Match:
    """
    Canonical match record.

    id is the provider's native id as a string. When the provider gave none,
    a synthetic id is generated and synthetic_id is set: such ids change on
    every refresh and must not be used as stable keys.
    """
    id: str
    home_team: TeamRef
    away_team: TeamRef
    kickoff_utc: Optional[str]
    status: MatchStatus = MatchStatus.SCHEDULED
    competition_code: Optional[str] = None
    competition_name: str = DEFAULT_COMPETITION_NAME
    competition_emblem: str = ""
    matchday: Optional[int] = None
    venue: str = DEFAULT_VENUE
    score_home: Optional[int] = None
    score_away: Optional[int] = None
    provider: str = ProviderKind.FOOTBALL_DATA.value
    synthetic_id: bool = False

    @property
    def kickoff_date(self) -> Optional[str]:
        """YYYY-MM-DD of kickoff (UTC)."""
        return self.kickoff_utc[:10] if self.kickoff_utc else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "synthetic_id": self.synthetic_id,
            "provider": self.provider,
            "competition": {
                "code": self.competition_code,
                "name": self.competition_name,
                "emblem": self.competition_emblem,
            },
            "home_team": asdict(self.home_team),
            "away_team": asdict(self.away_team),
            "kickoff_utc": self.kickoff_utc,
            "matchday": self.matchday,
            "status": self.status.value,
            "venue": self.venue,
            "score": {"home": self.score_home, "away": self.score_away},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        competition = data.get("competition") or {}
        score = data.get("score") or {}
        try:
            status = MatchStatus(data.get("status"))
        except ValueError:
            status = MatchStatus.SCHEDULED
        return cls(
            id=safe_str(data.get("id")),
            home_team=TeamRef(**_team_fields(data.get("home_team"), DEFAULT_HOME_NAME)),
            away_team=TeamRef(**_team_fields(data.get("away_team"), DEFAULT_AWAY_NAME)),
            kickoff_utc=data.get("kickoff_utc"),
            status=status,
            competition_code=competition.get("code"),
            competition_name=competition.get("name") or DEFAULT_COMPETITION_NAME,
            competition_emblem=competition.get("emblem") or "",
            matchday=data.get("matchday"),
            venue=data.get("venue") or DEFAULT_VENUE,
            score_home=score.get("home"),
            score_away=score.get("away"),
            provider=data.get("provider") or ProviderKind.FOOTBALL_DATA.value,
            synthetic_id=bool(data.get("synthetic_id")),
        )


def _team_fields(team: Optional[Dict[str, Any]], default_name: str) -> Dict[str, Any]:
    team = team or {}
    return {
        "id": safe_int(team.get("id"), None),
        "name": team.get("name") or default_name,
        "crest_url": team.get("crest_url") or "",
    }


@dataclass
class Standing:
    """One row of a league table."""
    team_id: Optional[int]
    team_name: str
    position: int
    played: int = 0
    won: int = 0
    draw: int = 0
    lost: int = 0
    points: int = 0
    goal_difference: int = 0
    form: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HeadToHeadEntry:
    """A past meeting between the two teams of a match."""
    fixture_id: Optional[str]
    date: Optional[str]
    home_team: str
    away_team: str
    home_goals: Optional[int]
    away_goals: Optional[int]
    competition_name: str
    status: str

    @property
    def winner(self) -> str:
        """home | away | draw. Unknown goals count as a draw."""
        if self.home_goals is None or self.away_goals is None:
            return "draw"
        if self.home_goals > self.away_goals:
            return "home"
        if self.away_goals > self.home_goals:
            return "away"
        return "draw"

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["winner"] = self.winner
        return result


# =============================================================================
# HELPERS
# =============================================================================

def sanitize_keys(value: Any) -> Any:
    """
    Replace "." with "_" in every mapping key, recursively.

    Dots are a structural delimiter in the storage layer. Lists and nested
    mappings are walked; scalars are returned unchanged. Idempotent.

    Example: {"a.b": {"c.d": 1}} -> {"a_b": {"c_d": 1}}
    """
    if isinstance(value, dict):
        return {str(k).replace(".", "_"): sanitize_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_keys(v) for v in value]
    return value


def synthetic_match_id() -> str:
    """Timestamp plus random suffix, for payloads that carry no id."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{int(time.time() * 1000)}-{suffix}"


def to_iso_utc(value: Any) -> Optional[str]:
    """Normalize a timestamp (ISO string or datetime) to 'YYYY-MM-DDTHH:MM:SSZ'."""
    parsed = to_naive_utc(value)
    if parsed is None:
        return None
    return parsed.strftime("%Y-%m-%dT%H:%M:%SZ")


def map_status(raw_status: Any, provider: ProviderKind) -> MatchStatus:
    """Map a provider status code into the canonical enum (unknown -> SCHEDULED)."""
    code = safe_str(raw_status).strip().upper()
    table = API_FOOTBALL_STATUS if provider == ProviderKind.API_FOOTBALL else FOOTBALL_DATA_STATUS
    return table.get(code, MatchStatus.SCHEDULED)


def _require_mapping(raw: Any, what: str) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedRecord(f"{what}: expected an object, got {type(raw).__name__}")
    return raw


def _id_or_synthetic(raw_id: Any):
    if raw_id is None or safe_str(raw_id).strip() == "":
        return synthetic_match_id(), True
    return safe_str(raw_id), False


def normalize_batch(
    items: Optional[Iterable[Any]],
    normalize_fn: Callable[[Any], T],
    label: str = "record",
) -> List[T]:
    """
    Normalize a batch, skipping (and logging) malformed records.

    One bad record never aborts the rest of the batch.
    """
    results = []
    for index, item in enumerate(items or []):
        try:
            results.append(normalize_fn(item))
        except (MalformedRecord, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed {label} #{index}: {e}")
    return results


# =============================================================================
# FOOTBALL-DATA.ORG
# =============================================================================

def normalize_competition(raw: Any) -> Competition:
    """football-data /competitions entry -> Competition."""
    raw = _require_mapping(raw, "competition")
    code = raw.get("code")
    if not code:
        raise MalformedRecord("competition without code")
    try:
        kind = CompetitionKind(safe_str(raw.get("type")).upper())
    except ValueError:
        kind = CompetitionKind.CUP
    return Competition(
        code=code,
        name=raw.get("name") or code,
        emblem=raw.get("emblem") or "",
        kind=kind,
        id=safe_int(raw.get("id"), None),
    )


def normalize_football_data_match(raw: Any, competition: Optional[Competition] = None) -> Match:
    """football-data match -> Match. competition overrides the embedded one."""
    raw = _require_mapping(raw, "match")
    if "homeTeam" not in raw and "awayTeam" not in raw:
        raise MalformedRecord(f"match {raw.get('id')} has no team data")

    home = raw.get("homeTeam") or {}
    away = raw.get("awayTeam") or {}
    embedded = raw.get("competition") or {}
    full_time = (raw.get("score") or {}).get("fullTime") or {}
    venue = raw.get("venue")
    if isinstance(venue, dict):
        venue = venue.get("name")

    match_id, synthetic = _id_or_synthetic(raw.get("id"))
    return Match(
        id=match_id,
        synthetic_id=synthetic,
        provider=ProviderKind.FOOTBALL_DATA.value,
        home_team=TeamRef(
            id=safe_int(home.get("id"), None),
            name=home.get("name") or DEFAULT_HOME_NAME,
            crest_url=home.get("crest") or "",
        ),
        away_team=TeamRef(
            id=safe_int(away.get("id"), None),
            name=away.get("name") or DEFAULT_AWAY_NAME,
            crest_url=away.get("crest") or "",
        ),
        kickoff_utc=to_iso_utc(raw.get("utcDate")),
        status=map_status(raw.get("status"), ProviderKind.FOOTBALL_DATA),
        competition_code=competition.code if competition else embedded.get("code"),
        competition_name=(competition.name if competition else embedded.get("name")) or DEFAULT_COMPETITION_NAME,
        competition_emblem=(competition.emblem if competition else embedded.get("emblem")) or "",
        matchday=safe_int(raw.get("matchday"), None) or 1,
        venue=venue or DEFAULT_VENUE,
        score_home=safe_int(full_time.get("home"), None),
        score_away=safe_int(full_time.get("away"), None),
    )


def normalize_standings(raw: Any) -> List[Standing]:
    """
    football-data /competitions/{code}/standings -> rows of the TOTAL table.
    """
    raw = _require_mapping(raw, "standings")
    tables = raw.get("standings") or []
    total = next((t for t in tables if isinstance(t, dict) and t.get("type") == "TOTAL"), None)
    if total is None and tables:
        total = tables[0] if isinstance(tables[0], dict) else None
    if total is None:
        return []

    def row_to_standing(row: Any) -> Standing:
        row = _require_mapping(row, "standing row")
        team = row.get("team") or {}
        if not team.get("name"):
            raise MalformedRecord("standing row without team")
        return Standing(
            team_id=safe_int(team.get("id"), None),
            team_name=team["name"],
            position=safe_int(row.get("position")),
            played=safe_int(row.get("playedGames")),
            won=safe_int(row.get("won")),
            draw=safe_int(row.get("draw")),
            lost=safe_int(row.get("lost")),
            points=safe_int(row.get("points")),
            goal_difference=safe_int(row.get("goalDifference")),
            form=row.get("form"),
        )

    return normalize_batch(total.get("table"), row_to_standing, "standing row")


# =============================================================================
# API-FOOTBALL
# =============================================================================

def normalize_api_football_fixture(raw: Any) -> Match:
    """API-Football /fixtures response item -> Match."""
    raw = _require_mapping(raw, "fixture")
    teams = raw.get("teams")
    if not isinstance(teams, dict):
        raise MalformedRecord("fixture has no team data")

    fixture = raw.get("fixture") or {}
    league = raw.get("league") or {}
    goals = raw.get("goals") or {}
    home = teams.get("home") or {}
    away = teams.get("away") or {}

    kickoff = fixture.get("date")
    if not kickoff and fixture.get("timestamp") is not None:
        kickoff = safe_int(fixture.get("timestamp")) * 1000

    match_id, synthetic = _id_or_synthetic(fixture.get("id"))
    return Match(
        id=match_id,
        synthetic_id=synthetic,
        provider=ProviderKind.API_FOOTBALL.value,
        home_team=TeamRef(
            id=safe_int(home.get("id"), None),
            name=home.get("name") or DEFAULT_HOME_NAME,
            crest_url=home.get("logo") or "",
        ),
        away_team=TeamRef(
            id=safe_int(away.get("id"), None),
            name=away.get("name") or DEFAULT_AWAY_NAME,
            crest_url=away.get("logo") or "",
        ),
        kickoff_utc=to_iso_utc(kickoff),
        status=map_status((fixture.get("status") or {}).get("short"), ProviderKind.API_FOOTBALL),
        competition_code=safe_str(league.get("id")) or None,
        competition_name=league.get("name") or DEFAULT_COMPETITION_NAME,
        competition_emblem=league.get("logo") or "",
        matchday=_round_number(league.get("round")),
        venue=(fixture.get("venue") or {}).get("name") or DEFAULT_VENUE,
        score_home=safe_int(goals.get("home"), None),
        score_away=safe_int(goals.get("away"), None),
    )


def _round_number(round_label: Any) -> Optional[int]:
    """'Regular Season - 27' -> 27."""
    if not round_label:
        return None
    tail = safe_str(round_label).rsplit("-", 1)[-1].strip()
    return safe_int(tail, None)


def normalize_head_to_head_entry(raw: Any) -> HeadToHeadEntry:
    """API-Football /fixtures/headtohead item -> HeadToHeadEntry."""
    raw = _require_mapping(raw, "head-to-head fixture")
    teams = raw.get("teams")
    if not isinstance(teams, dict):
        raise MalformedRecord("head-to-head fixture has no team data")
    fixture = raw.get("fixture") or {}
    goals = raw.get("goals") or {}
    return HeadToHeadEntry(
        fixture_id=safe_str(fixture.get("id")) or None,
        date=to_iso_utc(fixture.get("date")),
        home_team=(teams.get("home") or {}).get("name") or DEFAULT_HOME_NAME,
        away_team=(teams.get("away") or {}).get("name") or DEFAULT_AWAY_NAME,
        home_goals=safe_int(goals.get("home"), None),
        away_goals=safe_int(goals.get("away"), None),
        competition_name=(raw.get("league") or {}).get("name") or DEFAULT_COMPETITION_NAME,
        status=map_status((fixture.get("status") or {}).get("short"), ProviderKind.API_FOOTBALL).value,
    )


def normalize_prediction(raw: Any) -> Dict[str, Any]:
    """API-Football /predictions item -> opaque dict safe for storage."""
    raw = _require_mapping(raw, "prediction")
    return sanitize_keys(raw)


# =============================================================================
# THE ODDS API
# =============================================================================

def normalize_sport(raw: Any) -> Dict[str, Any]:
    raw = _require_mapping(raw, "sport")
    if not raw.get("key"):
        raise MalformedRecord("sport without key")
    return {
        "key": raw["key"],
        "group": raw.get("group") or "",
        "title": raw.get("title") or raw["key"].replace("_", " "),
        "active": bool(raw.get("active", True)),
    }


def normalize_odds_event(raw: Any) -> Dict[str, Any]:
    """Odds API event -> canonical odds event with bookmakers and markets."""
    raw = _require_mapping(raw, "odds event")

    def outcome(item: Any) -> Dict[str, Any]:
        item = _require_mapping(item, "outcome")
        result = {"name": safe_str(item.get("name")), "price": item.get("price")}
        if item.get("point") is not None:
            result["point"] = item.get("point")
        return result

    def market(item: Any) -> Dict[str, Any]:
        item = _require_mapping(item, "market")
        return {
            "key": safe_str(item.get("key")),
            "last_update": item.get("last_update"),
            "outcomes": normalize_batch(item.get("outcomes"), outcome, "outcome"),
        }

    def bookmaker(item: Any) -> Dict[str, Any]:
        item = _require_mapping(item, "bookmaker")
        return {
            "key": safe_str(item.get("key")),
            "title": item.get("title") or safe_str(item.get("key")),
            "last_update": item.get("last_update"),
            "markets": normalize_batch(item.get("markets"), market, "market"),
        }

    event_id, synthetic = _id_or_synthetic(raw.get("id"))
    sport_key = safe_str(raw.get("sport_key"))
    return {
        "id": event_id,
        "synthetic_id": synthetic,
        "sport_key": sport_key,
        "sport_title": raw.get("sport_title") or sport_key.replace("_", " "),
        "home_team": raw.get("home_team") or DEFAULT_HOME_NAME,
        "away_team": raw.get("away_team") or DEFAULT_AWAY_NAME,
        "commence_time": to_iso_utc(raw.get("commence_time")),
        "bookmakers": normalize_batch(raw.get("bookmakers"), bookmaker, "bookmaker"),
    }


# =============================================================================
# DISPATCH
# =============================================================================

_NORMALIZERS: Dict[ProviderKind, Dict[str, Callable[[Any], Any]]] = {
    ProviderKind.FOOTBALL_DATA: {
        "competition": normalize_competition,
        "match": normalize_football_data_match,
        "standings": normalize_standings,
    },
    ProviderKind.API_FOOTBALL: {
        "match": normalize_api_football_fixture,
        "head_to_head": normalize_head_to_head_entry,
        "prediction": normalize_prediction,
    },
    ProviderKind.ODDS_API: {
        "sport": normalize_sport,
        "odds_event": normalize_odds_event,
    },
}


def normalize(payload: Any, provider: ProviderKind, entity: str = "match") -> Any:
    """
    Normalize one provider payload into its canonical record.

    Raises:
        MalformedRecord: payload lacks required structure
        ValueError: provider does not supply that entity
    """
    try:
        fn = _NORMALIZERS[provider][entity]
    except KeyError:
        raise ValueError(f"{provider.value} does not provide '{entity}' records")
    return fn(payload)
