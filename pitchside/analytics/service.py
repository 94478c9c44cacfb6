"""
Persistent interest analytics.

Each interaction event is applied as one INSERT-if-missing plus one
UPDATE ... SET counter = counter + delta, with interest_rating recomputed
from the incremented columns inside the same statement. Concurrent events
for a match therefore never lose increments and the rating always matches
the counters it was computed from.
"""
import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import Integer, case, cast, delete, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from pitchside.models import AnalyticsRecord
from pitchside.utils.helpers import safe_int, utcnow
from config.settings import settings
from .interest import (
    CLICK_WEIGHT,
    ENGAGEMENT_BONUS,
    ENGAGEMENT_THRESHOLD_SECONDS,
    TIME_SCORE_CAP,
    TIME_WEIGHT,
    VIEW_WEIGHT,
    InteractionType,
    InterestCounters,
    calculate_interest_rating,
    event_deltas,
)

logger = logging.getLogger("analytics.service")

# Counters that may be overwritten through batch_update_analytics
_COUNTER_FIELDS = {
    "clicks": "clicks",
    "timeSpent": "time_spent_seconds",
    "pageViews": "page_views",
    "shares": "shares",
}


def rating_expression(time_spent, clicks, page_views):
    """SQL twin of calculate_interest_rating over column expressions."""
    time_score = time_spent * TIME_WEIGHT
    capped = case((time_score < TIME_SCORE_CAP, time_score), else_=TIME_SCORE_CAP)
    engagement = case((time_spent > ENGAGEMENT_THRESHOLD_SECONDS, ENGAGEMENT_BONUS), else_=0)
    # SQL round() is half-away-from-zero, same as the Python side for non-negative scores
    return cast(func.round(capped + clicks * CLICK_WEIGHT + page_views * VIEW_WEIGHT + engagement), Integer)


def to_counters(record: AnalyticsRecord) -> InterestCounters:
    return InterestCounters(
        match_id=record.match_id,
        clicks=record.clicks or 0,
        time_spent_seconds=record.time_spent_seconds or 0,
        page_views=record.page_views or 0,
        shares=record.shares or 0,
        interest_rating=record.interest_rating or 0,
        created_at=record.created_at,
        last_updated=record.last_updated,
        last_viewed_at=record.last_viewed_at,
    )


class AnalyticsService:
    """Tracks match interactions and answers trending queries."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _ensure_row(self, session: Session, match_id: str) -> None:
        now = utcnow()
        if session.get_bind().dialect.name == "sqlite":
            session.execute(
                sqlite_insert(AnalyticsRecord)
                .values(match_id=match_id, created_at=now, last_updated=now)
                .on_conflict_do_nothing(index_elements=[AnalyticsRecord.match_id])
            )
        elif session.get(AnalyticsRecord, match_id) is None:
            session.add(AnalyticsRecord(match_id=match_id, created_at=now, last_updated=now))
            session.flush()

    def track_interaction(
        self,
        match_id: str,
        interaction: InteractionType,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[InterestCounters]:
        """
        Apply one interaction event to a match's counters.

        Creates the record on the first event. Returns the record as stored
        after the update, or None when no match id was given.
        """
        if not match_id:
            logger.warning("No match_id provided for tracking")
            return None

        deltas = event_deltas(interaction, payload)
        table = AnalyticsRecord
        new_clicks = table.clicks + deltas.get("clicks", 0)
        new_time = table.time_spent_seconds + deltas.get("time_spent_seconds", 0)
        new_views = table.page_views + deltas.get("page_views", 0)
        now = utcnow()

        values = {
            "clicks": new_clicks,
            "time_spent_seconds": new_time,
            "page_views": new_views,
            "shares": table.shares + deltas.get("shares", 0),
            "interest_rating": rating_expression(new_time, new_clicks, new_views),
            "last_updated": now,
        }
        if interaction == InteractionType.PAGE_VIEW:
            values["last_viewed_at"] = now

        with self._session() as session:
            self._ensure_row(session, match_id)
            session.execute(
                update(table)
                .where(table.match_id == match_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

        logger.info(f"Tracked {interaction.value} for match {match_id}")
        return self.get_match_analytics(match_id)

    def get_match_analytics(self, match_id: str) -> Optional[InterestCounters]:
        if not match_id:
            return None
        with self._session() as session:
            record = session.get(AnalyticsRecord, match_id)
            return to_counters(record) if record else None

    def get_trending(
        self,
        limit: Optional[int] = None,
        window_days: Optional[int] = None,
        offset: int = 0,
    ) -> List[InterestCounters]:
        """
        Records updated within the window, highest interest first.

        Args:
            limit: Max records (default settings.trending_limit); None-like
                   values fall back to the default
            window_days: Recency window (default settings.trending_window_days)
            offset: Records to skip, for callers that page past filtered rows
        """
        limit = limit or settings.trending_limit
        since = utcnow() - timedelta(days=window_days or settings.trending_window_days)
        with self._session() as session:
            rows = session.execute(
                select(AnalyticsRecord)
                .where(AnalyticsRecord.last_updated >= since)
                .order_by(
                    AnalyticsRecord.interest_rating.desc(),
                    AnalyticsRecord.last_updated.desc(),
                    AnalyticsRecord.match_id,
                )
                .offset(offset)
                .limit(limit)
            ).scalars().all()
            return [to_counters(row) for row in rows]

    def batch_update_analytics(self, updates: List[Dict[str, Any]]) -> int:
        """
        Overwrite counters for several matches (cleanup / migration).

        Each update is {"matchId": ..., "data": {"clicks": .., "timeSpent": ..,
        "pageViews": .., "shares": ..}}. Unknown fields are ignored. The rating
        is recomputed and last_updated stamped.

        Returns:
            Number of records updated
        """
        updated = 0
        with self._session() as session:
            for item in updates:
                match_id = item.get("matchId")
                record = session.get(AnalyticsRecord, match_id) if match_id else None
                if record is None:
                    logger.warning(f"Batch update skipped unknown match {match_id}")
                    continue
                for key, column in _COUNTER_FIELDS.items():
                    if key in (item.get("data") or {}):
                        setattr(record, column, max(0, safe_int(item["data"][key])))
                record.interest_rating = calculate_interest_rating(
                    record.time_spent_seconds, record.clicks, record.page_views
                )
                record.last_updated = utcnow()
                updated += 1
        logger.info(f"Batch updated {updated} analytics records")
        return updated

    def cleanup_old_analytics(self, days: Optional[int] = None) -> int:
        """
        Delete records not updated for `days` (default 30).

        Returns:
            Number deleted; 0 on any failure
        """
        cutoff = utcnow() - timedelta(days=days or settings.analytics_retention_days)
        try:
            with self._session() as session:
                result = session.execute(delete(AnalyticsRecord).where(AnalyticsRecord.last_updated < cutoff))
                count = result.rowcount or 0
        except Exception as e:
            logger.error(f"Error cleaning up old analytics: {e}")
            return 0
        if count:
            logger.info(f"Cleaned up {count} old analytics records")
        else:
            logger.info("No old analytics data to clean up")
        return count
