"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # football-data.org (competitions, scheduled matches, standings)
    football_data_api_key: Optional[str] = None
    football_data_base_url: str = "https://api.football-data.org/v4"

    # API-Football (fixtures by date, head-to-head, predictions)
    api_football_key: Optional[str] = None
    api_football_base_url: str = "https://v3.football.api-sports.io"

    # The Odds API
    odds_api_key: Optional[str] = None
    odds_api_base_url: str = "https://api.the-odds-api.com/v4"
    odds_regions: str = "eu"
    odds_bookmakers: str = "bet365,paddypower,williamhill"
    odds_markets: str = "h2h,spreads,totals"

    # Claude (match analysis text)
    anthropic_api_key: Optional[str] = None

    # Storage
    database_url: str = "sqlite:///./pitchside.db"

    # Freshness windows (hours)
    leagues_ttl_hours: int = 24
    fixtures_ttl_hours: int = 24
    match_detail_ttl_hours: int = 24
    head_to_head_ttl_hours: int = 24
    predictions_ttl_hours: int = 5

    # Trending / analytics
    trending_limit: int = 20
    trending_window_days: int = 7
    analytics_retention_days: int = 30

    # Upstream behaviour
    request_timeout: float = 30.0
    fanout_workers: int = 8
    coalesce_timeout: float = 60.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
