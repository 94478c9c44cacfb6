"""
football-data.org v4 client: competitions, scheduled matches, single matches, standings.
"""
from typing import List, Optional

from pitchside.normalizer import (
    Competition,
    Match,
    Standing,
    normalize_batch,
    normalize_competition,
    normalize_football_data_match,
    normalize_standings,
)
from config.settings import settings
from .base import BaseAPIClient


class FootballDataClient(BaseAPIClient):
    SOURCE = "football-data"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            base_url or settings.football_data_base_url,
            api_key if api_key is not None else settings.football_data_api_key,
            **kwargs,
        )

    def _auth(self):
        return {"X-Auth-Token": self.api_key or ""}, {}

    def get_competitions(self) -> List[Competition]:
        data = self.get_json("competitions")
        return normalize_batch((data or {}).get("competitions"), normalize_competition, "competition")

    def get_scheduled_matches(self, competition: Competition) -> List[Match]:
        data = self.get_json(f"competitions/{competition.code}/matches", {"status": "SCHEDULED"})
        return normalize_batch(
            (data or {}).get("matches"),
            lambda raw: normalize_football_data_match(raw, competition),
            "match",
        )

    def get_standings(self, competition_code: str) -> List[Standing]:
        data = self.get_json(f"competitions/{competition_code}/standings")
        return normalize_standings(data or {})


    def get_match(self, match_id: str) -> Optional[Match]:
        """One match by id; None when the payload carries no usable match."""
        data = self.get_json(f"matches/{match_id}")
        matches = normalize_batch([data] if data else [], normalize_football_data_match, "match")
        return matches[0] if matches else None
