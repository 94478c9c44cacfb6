"""
Interest scoring for matches.

interest_rating is a capped weighted blend of interaction counters:

    time_score       = min(time_spent * 0.1, 50)
    click_score      = clicks * 5
    view_bonus       = page_views * 2
    engagement_bonus = 10 if time_spent > 30 else 0

rounded half-up. Counters only grow, so the rating never decreases.
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pitchside.utils.helpers import safe_int, utcnow

TIME_WEIGHT = 0.1
TIME_SCORE_CAP = 50
CLICK_WEIGHT = 5
VIEW_WEIGHT = 2
ENGAGEMENT_THRESHOLD_SECONDS = 30
ENGAGEMENT_BONUS = 10


class InteractionType(Enum):
    CLICK = "click"
    TIME_SPENT = "timeSpent"
    PAGE_VIEW = "pageView"
    SHARE = "share"


@dataclass(frozen=True)
class InterestCounters:
    """In-memory view of an analytics record."""
    match_id: str
    clicks: int = 0
    time_spent_seconds: int = 0
    page_views: int = 0
    shares: int = 0
    interest_rating: int = 0
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() + "Z" if value else None

        return {
            "matchId": self.match_id,
            "clicks": self.clicks,
            "timeSpent": self.time_spent_seconds,
            "pageViews": self.page_views,
            "shares": self.shares,
            "interestRating": self.interest_rating,
            "createdAt": iso(self.created_at),
            "lastUpdated": iso(self.last_updated),
            "lastViewedAt": iso(self.last_viewed_at),
        }


def calculate_interest_rating(time_spent: int, clicks: int, page_views: int = 0) -> int:
    """Capped weighted interest rating (see module docstring)."""
    time_score = min(time_spent * TIME_WEIGHT, TIME_SCORE_CAP)
    click_score = clicks * CLICK_WEIGHT
    view_bonus = page_views * VIEW_WEIGHT
    engagement_bonus = ENGAGEMENT_BONUS if time_spent > ENGAGEMENT_THRESHOLD_SECONDS else 0
    return int(math.floor(time_score + click_score + view_bonus + engagement_bonus + 0.5))


def event_deltas(event: InteractionType, payload: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
    """
    Counter increments for one interaction event.

    timeSpent adds payload["timeSpent"] seconds, and only when positive.
    """
    payload = payload or {}
    if event == InteractionType.CLICK:
        return {"clicks": 1}
    if event == InteractionType.PAGE_VIEW:
        return {"page_views": 1}
    if event == InteractionType.SHARE:
        return {"shares": 1}
    if event == InteractionType.TIME_SPENT:
        seconds = safe_int(payload.get("timeSpent"))
        return {"time_spent_seconds": seconds} if seconds > 0 else {}
    raise ValueError(f"Unknown interaction type: {event}")


def apply_event(
    record: InterestCounters,
    event: InteractionType,
    payload: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> InterestCounters:
    """Return a new record with the event applied and the rating recomputed."""
    now = now or utcnow()
    deltas = event_deltas(event, payload)
    updated = replace(
        record,
        clicks=record.clicks + deltas.get("clicks", 0),
        time_spent_seconds=record.time_spent_seconds + deltas.get("time_spent_seconds", 0),
        page_views=record.page_views + deltas.get("page_views", 0),
        shares=record.shares + deltas.get("shares", 0),
        created_at=record.created_at or now,
        last_updated=now,
        last_viewed_at=now if event == InteractionType.PAGE_VIEW else record.last_viewed_at,
    )
    return replace(
        updated,
        interest_rating=calculate_interest_rating(
            updated.time_spent_seconds, updated.clicks, updated.page_views
        ),
    )
