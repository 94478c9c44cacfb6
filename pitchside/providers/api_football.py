"""
API-Football v3 client: fixtures by date/id, head-to-head, predictions.
"""
from typing import Any, Dict, List, Optional

from pitchside.normalizer import (
    HeadToHeadEntry,
    Match,
    normalize_api_football_fixture,
    normalize_batch,
    normalize_head_to_head_entry,
    normalize_prediction,
)
from config.settings import settings
from .base import BaseAPIClient


class APIFootballClient(BaseAPIClient):
    SOURCE = "api-football"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs):
        super().__init__(
            base_url or settings.api_football_base_url,
            api_key if api_key is not None else settings.api_football_key,
            **kwargs,
        )

    def _auth(self):
        return {"x-apisports-key": self.api_key or ""}, {}

    def _response_items(self, endpoint: str, params: Dict[str, Any]) -> List[Any]:
        data = self.get_json(endpoint, params) or {}
        return data.get("response") or []

    def get_fixtures_by_date(self, date: str) -> List[Match]:
        """Fixtures on a date (YYYY-MM-DD)."""
        return normalize_batch(self._response_items("fixtures", {"date": date}),
                               normalize_api_football_fixture, "fixture")

    def get_fixture(self, fixture_id: str) -> Optional[Match]:
        fixtures = normalize_batch(self._response_items("fixtures", {"id": fixture_id}),
                                   normalize_api_football_fixture, "fixture")
        return fixtures[0] if fixtures else None

    def get_head_to_head(self, home_team_id: int, away_team_id: int, last: int = 10) -> List[HeadToHeadEntry]:
        items = self._response_items("fixtures/headtohead", {"h2h": f"{home_team_id}-{away_team_id}", "last": last})
        return normalize_batch(items, normalize_head_to_head_entry, "head-to-head fixture")

    def get_predictions(self, fixture_id: str) -> Optional[Dict[str, Any]]:
        items = normalize_batch(self._response_items("predictions", {"fixture": fixture_id}),
                                normalize_prediction, "prediction")
        return items[0] if items else None
