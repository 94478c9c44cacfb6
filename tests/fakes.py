"""
In-memory stand-ins for the upstream providers and the analysis generator.
"""
from pitchside.errors import UpstreamUnavailable
from pitchside.normalizer import Competition, Match, ProviderKind, TeamRef
from pitchside.providers.odds_api import SportsQuota


def make_match(match_id, home, away, kickoff="2025-03-01T15:00:00Z", competition=None,
               provider=ProviderKind.FOOTBALL_DATA.value, home_id=None, away_id=None):
    competition = competition or Competition(code="PL", name="Premier League")
    return Match(
        id=str(match_id),
        home_team=TeamRef(id=home_id, name=home),
        away_team=TeamRef(id=away_id, name=away),
        kickoff_utc=kickoff,
        competition_code=competition.code,
        competition_name=competition.name,
        provider=provider,
    )


class FakeFootballData:
    """football-data.org stand-in. Competitions listed in `failing` raise."""

    def __init__(self, competitions=None, matches=None, standings=None, failing=(), down=False):
        self.competitions = competitions or []
        self.matches = matches or {}
        self.standings = standings or {}
        self.failing = set(failing)
        self.down = down
        self.calls = []

    def get_competitions(self):
        self.calls.append(("competitions",))
        if self.down:
            raise UpstreamUnavailable("football-data", "HTTP 503 on competitions", status_code=503)
        return list(self.competitions)

    def get_scheduled_matches(self, competition):
        self.calls.append(("matches", competition.code))
        if competition.code in self.failing:
            raise UpstreamUnavailable("football-data", f"HTTP 500 on {competition.code}", status_code=500)
        return list(self.matches.get(competition.code, []))

    def get_match(self, match_id):
        self.calls.append(("match", str(match_id)))
        if self.down:
            raise UpstreamUnavailable("football-data", "HTTP 503 on match", status_code=503)
        for matches in self.matches.values():
            for match in matches:
                if match.id == str(match_id):
                    return match
        return None

    def get_standings(self, code):
        self.calls.append(("standings", code))
        if self.down:
            raise UpstreamUnavailable("football-data", "HTTP 503 on standings", status_code=503)
        return list(self.standings.get(code, []))


class FakeAPIFootball:
    """API-Football stand-in keyed by date / fixture id / team pair."""

    def __init__(self, fixtures_by_date=None, h2h=None, predictions=None, down=False):
        self.fixtures_by_date = fixtures_by_date or {}
        self.h2h = h2h or {}
        self.predictions = predictions or {}
        self.down = down
        self.calls = []

    def _check(self, what):
        if self.down:
            raise UpstreamUnavailable("api-football", f"transport failure on {what}")

    def get_fixtures_by_date(self, date):
        self.calls.append(("fixtures", date))
        self._check("fixtures")
        return list(self.fixtures_by_date.get(date, []))

    def get_fixture(self, fixture_id):
        self.calls.append(("fixture", fixture_id))
        self._check("fixture")
        for fixtures in self.fixtures_by_date.values():
            for fixture in fixtures:
                if fixture.id == str(fixture_id):
                    return fixture
        return None

    def get_head_to_head(self, home_id, away_id, last=10):
        self.calls.append(("h2h", home_id, away_id))
        self._check("headtohead")
        return list(self.h2h.get((home_id, away_id), []))

    def get_predictions(self, fixture_id):
        self.calls.append(("predictions", fixture_id))
        self._check("predictions")
        return self.predictions.get(str(fixture_id))


class FakeOdds:
    def __init__(self, events=None, error=None):
        self.events = events or {}
        self.error = error

    def get_event_odds(self, sport_key, event_id):
        if self.error:
            raise self.error
        return self.events[(sport_key, event_id)]

    def get_sport_odds(self, sport_key):
        if self.error:
            raise self.error
        return [event for (key, _), event in self.events.items() if key == sport_key]

    def get_sports(self):
        if self.error:
            raise self.error
        return {
            "sports": [{"key": "soccer_epl", "group": "Soccer", "title": "EPL", "active": True}],
            "quota": SportsQuota(remaining=480, used=20, last_cost=1),
        }


class FakeAnalysisGenerator:
    def __init__(self, text="<p>Big game.</p>"):
        self.text = text
        self.calls = 0

    @property
    def is_available(self):
        return True

    def generate(self, match):
        self.calls += 1
        return self.text

