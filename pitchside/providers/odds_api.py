"""
The Odds API v4 client: sports list (with quota headers) and event odds.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pitchside.errors import UpstreamUnavailable
from pitchside.normalizer import normalize_batch, normalize_odds_event, normalize_sport
from pitchside.utils.helpers import safe_int
from config.settings import settings
from .base import BaseAPIClient


@dataclass
class SportsQuota:
    """Request quota reported by the odds API on every response."""
    remaining: Optional[int] = None
    used: Optional[int] = None
    last_cost: Optional[int] = None

    @classmethod
    def from_headers(cls, headers) -> "SportsQuota":
        return cls(
            remaining=safe_int(headers.get("x-requests-remaining"), None),
            used=safe_int(headers.get("x-requests-used"), None),
            last_cost=safe_int(headers.get("x-requests-last"), None),
        )


class OddsAPIClient(BaseAPIClient):
    SOURCE = "odds-api"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            base_url or settings.odds_api_base_url,
            api_key if api_key is not None else settings.odds_api_key,
            **kwargs,
        )

    def _auth(self):
        return {}, {"apiKey": self.api_key or ""}

    def get_sports(self) -> Dict[str, Any]:
        """
        Returns:
            {"sports": [...], "quota": SportsQuota}
        """
        response = self.request("sports")
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(self.SOURCE, f"invalid JSON from sports: {e}")
        return {
            "sports": normalize_batch(payload, normalize_sport, "sport"),
            "quota": SportsQuota.from_headers(response.headers),
        }

    def get_event_odds(self, sport_key: str, event_id: str) -> Dict[str, Any]:
        data = self.get_json(
            f"sports/{sport_key}/events/{event_id}/odds",
            {
                "regions": settings.odds_regions,
                "bookmakers": settings.odds_bookmakers,
                "markets": settings.odds_markets,
            },
        )
        return normalize_odds_event(data or {})

    def get_sport_odds(self, sport_key: str) -> List[Dict[str, Any]]:
        data = self.get_json(
            f"sports/{sport_key}/odds",
            {"regions": settings.odds_regions, "markets": settings.odds_markets},
        )
        return normalize_batch(data, normalize_odds_event, "odds event")
