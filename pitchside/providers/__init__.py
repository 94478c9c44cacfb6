"""
Upstream API clients. Each returns canonical records from pitchside.normalizer.
"""
from .api_football import APIFootballClient
from .football_data import FootballDataClient
from .odds_api import OddsAPIClient, SportsQuota

__all__ = [
    "APIFootballClient",
    "FootballDataClient",
    "OddsAPIClient",
    "SportsQuota",
]
