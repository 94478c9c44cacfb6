"""
Cross-provider fixture matching.

football-data.org and API-Football have unrelated id spaces, so a match from
one is located in the other by comparing team names.
"""
import logging
import re
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar

from pitchside.normalizer import Match
from pitchside.utils.helpers import safe_lower

logger = logging.getLogger("matching")

F = TypeVar("F")

# Trailing club-suffix tokens that providers add or drop
_CLUB_SUFFIX = re.compile(r"(\s+(fc|football club))+$")


def normalize_team_name(name: Any) -> str:
    """
    Lower-case, trim, and drop trailing "fc" / "football club".

    Examples:
        "Arsenal FC" -> "arsenal"
        "Chelsea Football Club" -> "chelsea"
    """
    text = re.sub(r"\s+", " ", safe_lower(name).strip())
    return _CLUB_SUFFIX.sub("", text).strip()


class NameMatcher(Protocol):
    """Decides whether two team names refer to the same team."""

    def same_team(self, a: str, b: str) -> bool:
        ...


class SubstringNameMatcher:
    """
    Names match when equal after normalization or when one contains the other.

    Containment covers truncated/expanded names ("Man United" / "Man United FC")
    but can false-positive when a short name is a substring of an unrelated
    longer one.
    """

    def same_team(self, a: str, b: str) -> bool:
        left = normalize_team_name(a)
        right = normalize_team_name(b)
        if not left or not right:
            return False
        return left == right or left in right or right in left


DEFAULT_MATCHER: NameMatcher = SubstringNameMatcher()


def _match_team_names(fixture: Any):
    if isinstance(fixture, Match):
        return fixture.home_team.name, fixture.away_team.name
    if isinstance(fixture, dict):
        home = fixture.get("home_team") or {}
        away = fixture.get("away_team") or {}
        if isinstance(home, dict):
            return home.get("name"), away.get("name")
        return home, away
    raise TypeError(f"Unsupported fixture type: {type(fixture).__name__}")


def find_match(
    candidates: Sequence[F],
    home_team_name: str,
    away_team_name: str,
    matcher: Optional[NameMatcher] = None,
    team_names: Callable[[F], Any] = _match_team_names,
) -> Optional[F]:
    """
    First candidate whose home and away teams both match the given names.

    Args:
        candidates: Fixtures for the same date (Match objects or match dicts)
        home_team_name: Home team name from the other provider
        away_team_name: Away team name from the other provider
        matcher: Name comparison strategy (defaults to SubstringNameMatcher)
        team_names: Extracts (home, away) names from a candidate

    Returns:
        The matching candidate, or None
    """
    matcher = matcher or DEFAULT_MATCHER
    for candidate in candidates:
        home, away = team_names(candidate)
        if matcher.same_team(home, home_team_name) and matcher.same_team(away, away_team_name):
            return candidate
    logger.debug(f"No cross-provider match for {home_team_name} vs {away_team_name} among {len(candidates)} fixtures")
    return None
