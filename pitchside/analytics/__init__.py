"""
Match interest analytics: interaction counters and the interest rating.
"""
from .interest import (
    InteractionType,
    InterestCounters,
    apply_event,
    calculate_interest_rating,
)
from .service import AnalyticsService

__all__ = [
    "InteractionType",
    "InterestCounters",
    "apply_event",
    "calculate_interest_rating",
    "AnalyticsService",
]
