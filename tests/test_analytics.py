"""
Tests for interest scoring and persistent analytics.
"""
import threading
from datetime import timedelta

import pytest

from pitchside.analytics.interest import (
    InteractionType,
    InterestCounters,
    apply_event,
    calculate_interest_rating,
    event_deltas,
)
from pitchside.cache.store import MATCHES
from pitchside.models import AnalyticsRecord
from pitchside.utils.helpers import utcnow
from tests.fakes import make_match


# =============================================================================
# Interest formula
# =============================================================================

class TestInterestRating:

    def test_clicks_only(self):
        assert calculate_interest_rating(0, 2) == 10

    def test_time_score_is_capped(self):
        # 50 capped time score + 10 engagement bonus
        assert calculate_interest_rating(3600, 0) == 60

    def test_engagement_bonus_needs_more_than_30_seconds(self):
        assert calculate_interest_rating(30, 0) == 3
        assert calculate_interest_rating(31, 0) == 13

    def test_rounds_half_up(self):
        # 3.5 + 5 + 2 + 10 = 20.5
        assert calculate_interest_rating(35, 1, 1) == 21

    def test_zero_time_spent_is_ignored(self):
        assert event_deltas(InteractionType.TIME_SPENT, {"timeSpent": 0}) == {}
        assert event_deltas(InteractionType.TIME_SPENT, {"timeSpent": -5}) == {}
        assert event_deltas(InteractionType.TIME_SPENT, {}) == {}

    def test_rating_never_decreases(self):
        events = [
            (InteractionType.PAGE_VIEW, None),
            (InteractionType.TIME_SPENT, {"timeSpent": 20}),
            (InteractionType.CLICK, None),
            (InteractionType.SHARE, None),
            (InteractionType.TIME_SPENT, {"timeSpent": 0}),
            (InteractionType.TIME_SPENT, {"timeSpent": 900}),
            (InteractionType.CLICK, None),
        ]
        record = InterestCounters(match_id="42")
        ratings = [record.interest_rating]
        for event, payload in events:
            record = apply_event(record, event, payload)
            ratings.append(record.interest_rating)
        assert ratings == sorted(ratings)
        assert record.clicks == 2
        assert record.shares == 1
        assert record.last_viewed_at is not None


# =============================================================================
# AnalyticsService
# =============================================================================

class TestAnalyticsService:

    def test_first_event_creates_record(self, analytics):
        counters = analytics.track_interaction("42", InteractionType.CLICK)
        assert counters.clicks == 1
        assert counters.interest_rating == 5
        assert counters.created_at is not None

    def test_rating_matches_counters(self, analytics):
        analytics.track_interaction("42", InteractionType.PAGE_VIEW)
        analytics.track_interaction("42", InteractionType.TIME_SPENT, {"timeSpent": 35})
        counters = analytics.track_interaction("42", InteractionType.CLICK)
        assert counters.interest_rating == calculate_interest_rating(
            counters.time_spent_seconds, counters.clicks, counters.page_views
        ) == 21

    def test_concurrent_clicks_are_not_lost(self, analytics):
        barrier = threading.Barrier(2)

        def click():
            barrier.wait()
            analytics.track_interaction("42", InteractionType.CLICK)

        threads = [threading.Thread(target=click) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        counters = analytics.get_match_analytics("42")
        assert counters.clicks == 2
        assert counters.interest_rating == 10

    def test_missing_match_id(self, analytics):
        assert analytics.track_interaction("", InteractionType.CLICK) is None

    def test_trending_window_and_order(self, analytics, session_factory):
        for match_id, clicks in (("A", 2), ("B", 8), ("C", 5)):
            for _ in range(clicks):
                analytics.track_interaction(match_id, InteractionType.CLICK)
        analytics.track_interaction("OLD", InteractionType.CLICK)
        with session_factory() as session:
            session.get(AnalyticsRecord, "OLD").last_updated = utcnow() - timedelta(days=8)
            session.commit()

        trending = analytics.get_trending(limit=2)
        assert [c.match_id for c in trending] == ["B", "C"]
        assert [c.match_id for c in analytics.get_trending(limit=2, offset=2)] == ["A"]

    def test_batch_update_recomputes_rating(self, analytics):
        analytics.track_interaction("42", InteractionType.CLICK)
        updated = analytics.batch_update_analytics([
            {"matchId": "42", "data": {"clicks": 4, "bogus": 100}},
            {"matchId": "missing", "data": {"clicks": 1}},
        ])
        assert updated == 1
        counters = analytics.get_match_analytics("42")
        assert counters.clicks == 4
        assert counters.interest_rating == 20

    def test_cleanup_old_analytics(self, analytics, session_factory):
        analytics.track_interaction("fresh", InteractionType.CLICK)
        analytics.track_interaction("stale", InteractionType.CLICK)
        with session_factory() as session:
            session.get(AnalyticsRecord, "stale").last_updated = utcnow() - timedelta(days=31)
            session.commit()

        assert analytics.cleanup_old_analytics() == 1
        assert analytics.get_match_analytics("stale") is None
        assert analytics.get_match_analytics("fresh") is not None


# =============================================================================
# Trending through the aggregation cache
# =============================================================================

class TestTrending:

    @pytest.fixture
    def stored_matches(self, store):
        for match_id, (home, away) in {"A": ("Arsenal", "Chelsea"), "B": ("Leeds", "Burnley"),
                                       "C": ("Fulham", "Brentford")}.items():
            store.put(MATCHES, match_id, make_match(match_id, home, away).to_dict())

    def test_top_by_interest(self, cache, stored_matches):
        for match_id, clicks in (("A", 2), ("B", 8), ("C", 5)):
            for _ in range(clicks):
                cache.analytics.track_interaction(match_id, InteractionType.CLICK)

        trending = cache.get_trending(2)
        assert [m["id"] for m in trending] == ["B", "C"]
        assert [m["analytics"]["interestRating"] for m in trending] == [40, 25]

    def test_purged_matches_are_dropped(self, cache, stored_matches):
        for match_id, clicks in (("GONE", 9), ("A", 1)):
            for _ in range(clicks):
                cache.analytics.track_interaction(match_id, InteractionType.CLICK)

        trending = cache.get_trending(5)
        assert [m["id"] for m in trending] == ["A"]
