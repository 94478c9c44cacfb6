"""
TTL configuration per record kind and match-detail completeness checks.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from .core import CacheEnvelope, RecordKind, is_fresh
from config.settings import settings


# TTL configuration by kind
TTL_CONFIG: Dict[RecordKind, timedelta] = {
    RecordKind.LEAGUES: timedelta(hours=settings.leagues_ttl_hours),
    RecordKind.FIXTURES: timedelta(hours=settings.fixtures_ttl_hours),
    RecordKind.MATCH_DETAIL: timedelta(hours=settings.match_detail_ttl_hours),
    RecordKind.HEAD_TO_HEAD: timedelta(hours=settings.head_to_head_ttl_hours),
    RecordKind.PREDICTIONS: timedelta(hours=settings.predictions_ttl_hours),
}

# Sub-fields a stored match detail must carry before it is served as-is
REQUIRED_DETAIL_PARTS = ("standings", "head_to_head")


def get_ttl_for_kind(kind: RecordKind) -> timedelta:
    """Get the freshness window for a record kind."""
    return TTL_CONFIG[kind]


def is_kind_fresh(envelope: Optional[CacheEnvelope], kind: RecordKind) -> bool:
    """Freshness check using the kind's own TTL."""
    return is_fresh(envelope, get_ttl_for_kind(kind))


def _part_is_fresh(part: Dict[str, Any], value_key: str, kind: RecordKind) -> bool:
    envelope = CacheEnvelope(payload=part.get(value_key), updated_at=part.get("updated_at"))
    return is_kind_fresh(envelope, kind)


def missing_detail_parts(detail: Optional[Dict[str, Any]]) -> List[str]:
    """
    Which required sub-fields of a stored match detail need (re)fetching.

    standings: absent, or stamped longer ago than the match-detail TTL
    (a fetched table without the teams is stored as None rows).
    head_to_head: absent, or older than the head-to-head TTL (it refreshes
    independently of the match).

    Returns:
        Names of parts to refetch, in REQUIRED_DETAIL_PARTS order
    """
    if not detail:
        return list(REQUIRED_DETAIL_PARTS)

    missing = []
    standings = detail.get("standings")
    if not isinstance(standings, dict) or not _part_is_fresh(standings, "home", RecordKind.MATCH_DETAIL):
        missing.append("standings")

    h2h = detail.get("head_to_head")
    if not isinstance(h2h, dict) or h2h.get("matches") is None:
        missing.append("head_to_head")
    elif not _part_is_fresh(h2h, "matches", RecordKind.HEAD_TO_HEAD):
        missing.append("head_to_head")

    return missing
