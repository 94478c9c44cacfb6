"""
Pydantic schemas for API request/response models
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pitchside.analytics.interest import InteractionType


# ===== ANALYTICS SCHEMAS =====

class InteractionEvent(BaseModel):
    """One user interaction with a match page"""
    interaction: InteractionType = Field(..., alias="type")
    time_spent: Optional[int] = Field(None, alias="timeSpent", ge=0)

    class Config:
        populate_by_name = True

    def payload(self) -> Dict[str, Any]:
        return {"timeSpent": self.time_spent} if self.time_spent is not None else {}


class AnalyticsResponse(BaseModel):
    """Counters of a match as stored after the event"""
    matchId: str
    clicks: int
    timeSpent: int
    pageViews: int
    shares: int
    interestRating: int
    createdAt: Optional[str] = None
    lastUpdated: Optional[str] = None
    lastViewedAt: Optional[str] = None


# ===== MAINTENANCE SCHEMAS =====

class CleanupResult(BaseModel):
    matches_removed: int
    analytics_removed: int


# ===== ODDS SCHEMAS =====

class OddsOutcome(BaseModel):
    name: str
    price: Optional[float] = None
    point: Optional[float] = None


class OddsMarket(BaseModel):
    key: str
    last_update: Optional[str] = None
    outcomes: List[OddsOutcome] = []


class OddsBookmaker(BaseModel):
    key: str
    title: str
    last_update: Optional[str] = None
    markets: List[OddsMarket] = []


class OddsEvent(BaseModel):
    """Event odds; a placeholder event (no bookmakers) when the provider failed"""
    id: str
    sport_key: str
    sport_title: Optional[str] = None
    home_team: str
    away_team: str
    commence_time: Optional[str] = None
    bookmakers: List[OddsBookmaker] = []
