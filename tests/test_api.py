"""
Tests for the HTTP routes
"""
import pytest
from fastapi.testclient import TestClient

from pitchside.cache.store import MATCHES
from pitchside.errors import RateLimited, UpstreamUnavailable
from pitchside.main import app, get_cache
from tests.fakes import FakeOdds, make_match


@pytest.fixture
def client(cache):
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ===== HEALTH =====

def test_health_endpoint_returns_ok_status(client):
    """Test that /health returns status: ok"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_cache_stats(client):
    client.get("/api/leagues")
    stats = client.get("/cache/stats").json()
    assert stats["misses"] == 1
    assert "coalescer" in stats


# ===== FIXTURES & MATCHES =====

def test_leagues(client):
    body = client.get("/api/leagues").json()
    assert [name for name, _ in body["data"]["leagues"]] == ["Premier League", "Primera Division"]
    assert body["meta"]["cacheSource"] == "upstream"


def test_fixtures_bad_date_is_400(client):
    assert client.get("/api/fixtures/tomorrow").status_code == 400


def test_match_not_found_shape(client):
    response = client.get("/api/matches/424242")
    assert response.status_code == 404
    body = response.json()
    assert body["matchFound"] is False
    assert body["error"]


def test_match_detail(client, store):
    store.put(MATCHES, "1001", make_match(1001, "Arsenal FC", "Chelsea FC", home_id=57, away_id=61).to_dict())
    body = client.get("/api/matches/1001").json()
    assert body["matchFound"] is True
    assert body["homeTeamStanding"]["position"] == 1
    assert "standings" not in body["match"]


# ===== ANALYTICS & TRENDING =====

def test_track_interaction(client):
    client.post("/api/analytics/42", json={"type": "click"})
    response = client.post("/api/analytics/42", json={"type": "click"})
    assert response.status_code == 200
    body = response.json()
    assert body["clicks"] == 2
    assert body["interestRating"] == 10


def test_track_time_spent(client):
    body = client.post("/api/analytics/42", json={"type": "timeSpent", "timeSpent": 40}).json()
    assert body["timeSpent"] == 40
    assert body["interestRating"] == 14


def test_unknown_interaction_is_rejected(client):
    assert client.post("/api/analytics/42", json={"type": "hover"}).status_code == 422


def test_analytics_for_untracked_match(client):
    assert client.get("/api/analytics/nothing").status_code == 404


def test_trending(client, store):
    store.put(MATCHES, "42", make_match(42, "Arsenal", "Chelsea").to_dict())
    client.post("/api/analytics/42", json={"type": "pageView"})
    body = client.get("/api/trending?limit=5").json()
    assert body["count"] == 1
    assert body["matches"][0]["analytics"]["interestRating"] == 2


# ===== ODDS & ERRORS =====

def test_rate_limited_maps_to_429(client, cache):
    cache.odds_api = FakeOdds(error=RateLimited("odds-api", retry_after=60))
    response = client.get("/api/odds/soccer_epl/abc")
    assert response.status_code == 429
    assert response.json()["error"] == RateLimited.USER_MESSAGE
    assert response.headers["Retry-After"] == "60"


def test_unexpected_error_is_generic_500(client, cache, monkeypatch):
    def boom():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(cache, "get_leagues", boom)
    response = client.get("/api/leagues")
    assert response.status_code == 500
    assert "secret" not in response.text


# ===== ADMIN =====

def test_cleanup_requires_session(client):
    assert client.post("/admin/cleanup").status_code == 401


def test_cleanup_with_session(client):
    client.cookies.set("sessionid", "abc123")
    response = client.post("/admin/cleanup")
    assert response.status_code == 200
    assert response.json() == {"matches_removed": 0, "analytics_removed": 0}


def test_logout_clears_session_cookie(client):
    response = client.get("/admin/logout", follow_redirects=False)
    assert response.status_code == 303
    assert "sessionid" in response.headers["set-cookie"]


def test_sports_with_quota(client):
    body = client.get("/api/sports").json()
    assert body["sports"][0]["key"] == "soccer_epl"
    assert body["quota"]["remaining"] == 480


def test_sport_odds_degrade_to_empty(client, cache):
    cache.odds_api = FakeOdds(error=UpstreamUnavailable("odds-api", "HTTP 503"))
    body = client.get("/api/odds/soccer_epl").json()
    assert body["events"] == []
    assert body["error"]


def test_event_odds(client, cache):
    cache.odds_api = FakeOdds(events={("soccer_epl", "abc"): {
        "id": "abc",
        "synthetic_id": False,
        "sport_key": "soccer_epl",
        "sport_title": "EPL",
        "home_team": "Arsenal",
        "away_team": "Chelsea",
        "commence_time": "2025-03-01T15:00:00Z",
        "bookmakers": [{"key": "bet365", "title": "Bet365", "markets": [
            {"key": "h2h", "outcomes": [{"name": "Arsenal", "price": 1.9}]},
        ]}],
    }})
    body = client.get("/api/odds/soccer_epl/abc").json()
    assert body["event"]["home_team"] == "Arsenal"
    assert body["event"]["bookmakers"][0]["markets"][0]["outcomes"][0] == {"name": "Arsenal", "price": 1.9}
    assert body["error"] is None


def test_unknown_predictions_are_404(client):
    assert client.get("/api/matches/868002/predictions").status_code == 404
