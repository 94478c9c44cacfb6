"""
Tests for the upstream HTTP clients using a stubbed requests session.
"""
import pytest
import requests

from pitchside.errors import RateLimited, UpstreamUnavailable
from pitchside.providers import APIFootballClient, FootballDataClient, OddsAPIClient


class StubResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    """Replays queued responses (or raises queued exceptions) and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "params": params})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class TestErrorMapping:

    def test_429_is_rate_limited(self):
        session = StubSession(StubResponse(429, headers={"Retry-After": "30"}))
        client = FootballDataClient(api_key="k", session=session)
        with pytest.raises(RateLimited) as exc:
            client.get_competitions()
        assert exc.value.retry_after == 30

    def test_non_2xx_is_upstream_unavailable(self):
        session = StubSession(StubResponse(503))
        client = FootballDataClient(api_key="k", session=session)
        with pytest.raises(UpstreamUnavailable) as exc:
            client.get_competitions()
        assert exc.value.status_code == 503

    def test_transport_errors_are_retried(self):
        session = StubSession(
            requests.ConnectionError("reset"),
            StubResponse(200, {"competitions": [{"code": "PL", "name": "Premier League", "type": "LEAGUE"}]}),
        )
        client = FootballDataClient(api_key="k", session=session)
        assert [c.code for c in client.get_competitions()] == ["PL"]
        assert len(session.requests) == 2

    def test_invalid_json(self):
        session = StubSession(StubResponse(200, ValueError("not json")))
        client = APIFootballClient(api_key="k", session=session)
        with pytest.raises(UpstreamUnavailable):
            client.get_fixtures_by_date("2025-03-01")


class TestClients:

    def test_football_data_auth_and_scheduled_filter(self):
        session = StubSession(
            StubResponse(200, {"competitions": [{"code": "PL", "name": "Premier League", "type": "LEAGUE"}]}),
            StubResponse(200, {"matches": [
                {"id": 1, "homeTeam": {"name": "Arsenal FC"}, "awayTeam": {"name": "Chelsea FC"}},
                {"id": 2},
            ]}),
        )
        client = FootballDataClient(api_key="secret", base_url="https://fd.test/v4", session=session)
        competition = client.get_competitions()[0]
        matches = client.get_scheduled_matches(competition)

        assert [m.id for m in matches] == ["1"]
        assert matches[0].competition_name == "Premier League"
        request = session.requests[1]
        assert request["url"] == "https://fd.test/v4/competitions/PL/matches"
        assert request["params"] == {"status": "SCHEDULED"}
        assert request["headers"] == {"X-Auth-Token": "secret"}

    def test_api_football_head_to_head(self):
        session = StubSession(StubResponse(200, {"response": [{
            "fixture": {"id": 5, "date": "2024-10-05T16:30:00+00:00", "status": {"short": "FT"}},
            "league": {"name": "Premier League"},
            "teams": {"home": {"name": "Arsenal"}, "away": {"name": "Chelsea"}},
            "goals": {"home": 0, "away": 3},
        }]}))
        client = APIFootballClient(api_key="secret", session=session)
        entries = client.get_head_to_head(42, 49)

        assert entries[0].winner == "away"
        assert session.requests[0]["params"]["h2h"] == "42-49"
        assert session.requests[0]["headers"] == {"x-apisports-key": "secret"}

    def test_odds_sports_quota_headers(self):
        session = StubSession(StubResponse(
            200,
            [{"key": "soccer_epl", "group": "Soccer", "title": "EPL"}],
            headers={"x-requests-remaining": "480", "x-requests-used": "20", "x-requests-last": "1"},
        ))
        client = OddsAPIClient(api_key="secret", session=session)
        result = client.get_sports()

        assert result["sports"][0]["key"] == "soccer_epl"
        assert result["quota"].remaining == 480
        assert result["quota"].used == 20
        assert session.requests[0]["params"] == {"apiKey": "secret"}

    def test_football_data_single_match(self):
        session = StubSession(StubResponse(200, {
            "id": 497123,
            "homeTeam": {"id": 57, "name": "Arsenal FC"},
            "awayTeam": {"id": 61, "name": "Chelsea FC"},
            "status": "FINISHED",
            "score": {"fullTime": {"home": 2, "away": 2}},
        }))
        client = FootballDataClient(api_key="secret", base_url="https://fd.test/v4", session=session)
        match = client.get_match("497123")

        assert match.id == "497123"
        assert (match.score_home, match.score_away) == (2, 2)
        assert session.requests[0]["url"] == "https://fd.test/v4/matches/497123"
