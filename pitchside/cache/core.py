"""
Core cache data structures.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, Optional, TypeVar
from enum import Enum

from pitchside.utils.helpers import to_naive_utc, utcnow

T = TypeVar("T")


class RecordKind(Enum):
    """Kinds of cached aggregates, each with its own freshness window."""
    LEAGUES = "leagues"             # singleton grouped league list, 24h
    FIXTURES = "fixtures"           # fixtures/{YYYY-MM-DD}, 24h
    MATCH_DETAIL = "matches"        # matches/{id}, 24h + self-healing
    HEAD_TO_HEAD = "head_to_head"   # embedded in match detail, 24h
    PREDICTIONS = "predictions"     # predictions/{id}, 5h


class CacheSource(Enum):
    """Source of returned data."""
    FRESH = "fresh"       # Within TTL
    STALE = "stale"       # Past TTL, served because upstream failed
    UPSTREAM = "upstream" # Fetched from API


@dataclass
class CacheEnvelope(Generic[T]):
    """
    A cached payload plus its last-update stamp - the unit of freshness checking.

    updated_at is only ever set together with payload.
    """
    payload: T
    updated_at: Any = None

    @property
    def updated_at_utc(self) -> Optional[datetime]:
        """updated_at coerced to naive UTC, or None when missing/garbage."""
        return to_naive_utc(self.updated_at)

    @property
    def age_seconds(self) -> Optional[float]:
        """Seconds since the payload was written."""
        stamp = self.updated_at_utc
        if stamp is None:
            return None
        return (utcnow() - stamp).total_seconds()


def is_fresh(
    envelope: Optional[CacheEnvelope],
    ttl: timedelta,
    now: Optional[datetime] = None,
) -> bool:
    """
    True iff the envelope exists and (now - updated_at) < ttl.

    A missing or unparsable updated_at counts as stale so callers refetch
    rather than serve data of unknown age.
    """
    if envelope is None:
        return False
    stamp = envelope.updated_at_utc
    if stamp is None:
        return False
    current = to_naive_utc(now) if now is not None else utcnow()
    return (current - stamp) < ttl


@dataclass
class CacheMeta:
    """
    Metadata about a cache access, included in API responses.
    """
    last_updated: Optional[str]  # ISO timestamp of the envelope
    cache_source: str            # "fresh", "stale", or "upstream"
    kind: Optional[str] = None
    ttl_seconds: Optional[int] = None
    age_seconds: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        result = {
            "lastUpdated": self.last_updated,
            "cacheSource": self.cache_source,
        }
        if self.kind:
            result["_debug"] = {
                "kind": self.kind,
                "ttl": self.ttl_seconds,
                "age": round(self.age_seconds, 1) if self.age_seconds else None,
            }
        return result
