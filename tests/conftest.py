"""
Shared fixtures: a throwaway SQLite database and in-memory fake upstreams.
"""
import pytest

from pitchside.analytics.service import AnalyticsService
from pitchside.cache.manager import AggregationCache
from pitchside.cache.store import EnvelopeStore
from pitchside.db import create_session_factory
from pitchside.normalizer import Competition, CompetitionKind, HeadToHeadEntry, ProviderKind, Standing
from tests.fakes import FakeAnalysisGenerator, FakeAPIFootball, FakeFootballData, FakeOdds, make_match


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def session_factory(tmp_path):
    return create_session_factory(f"sqlite:///{tmp_path / 'pitchside-test.db'}")


@pytest.fixture
def store(session_factory):
    return EnvelopeStore(session_factory)


@pytest.fixture
def analytics(session_factory):
    return AnalyticsService(session_factory)


@pytest.fixture
def premier_league():
    return Competition(code="PL", name="Premier League", kind=CompetitionKind.LEAGUE)


@pytest.fixture
def football_data(premier_league):
    la_liga = Competition(code="PD", name="Primera Division", kind=CompetitionKind.LEAGUE)
    cup = Competition(code="CL", name="Champions League", kind=CompetitionKind.CUP)
    return FakeFootballData(
        competitions=[premier_league, la_liga, cup],
        matches={
            "PL": [
                make_match(1001, "Arsenal FC", "Chelsea FC", competition=premier_league, home_id=57, away_id=61),
                make_match(1002, "Liverpool FC", "Everton FC", competition=premier_league, home_id=64, away_id=62),
            ],
            "PD": [make_match(2001, "Sevilla FC", "Real Betis", competition=la_liga)],
            "CL": [make_match(3001, "FC Porto", "Inter", competition=cup)],
        },
        standings={
            "PL": [
                Standing(team_id=57, team_name="Arsenal FC", position=1, points=60),
                Standing(team_id=61, team_name="Chelsea FC", position=4, points=48),
            ],
        },
    )


@pytest.fixture
def api_football():
    fixture = make_match(
        "868001", "Arsenal", "Chelsea", provider=ProviderKind.API_FOOTBALL.value,
        competition=Competition(code="39", name="Premier League"), home_id=42, away_id=49,
    )
    return FakeAPIFootball(
        fixtures_by_date={"2025-03-01": [fixture]},
        h2h={(42, 49): [
            HeadToHeadEntry("700", "2024-10-05T16:30:00Z", "Arsenal", "Chelsea", 2, 1, "Premier League", "FINISHED"),
            HeadToHeadEntry("701", "2024-04-23T19:00:00Z", "Chelsea", "Arsenal", None, None, "Premier League", "POSTPONED"),
        ]},
        predictions={"868001": {"predictions": {"winner": {"name": "Arsenal"}}}},
    )


@pytest.fixture
def analysis_generator():
    return FakeAnalysisGenerator()


@pytest.fixture
def cache(store, analytics, football_data, api_football, analysis_generator):
    return AggregationCache(
        store=store,
        analytics=analytics,
        football_data=football_data,
        api_football=api_football,
        odds_api=FakeOdds(),
        analysis_generator=analysis_generator,
        fanout_workers=4,
    )
