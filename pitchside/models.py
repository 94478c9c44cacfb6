"""
Database models for Pitchside
SQLAlchemy ORM models for cached aggregates and match interest analytics
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

from pitchside.utils.helpers import utcnow

Base = declarative_base()


class CacheRecord(Base):
    """
    One cached aggregate (a CacheEnvelope) - payload plus its update stamp.
    Keyed by (collection, key), e.g. ("fixtures", "2025-03-01") or ("matches", "497123")
    """
    __tablename__ = "cache_entries"

    collection = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    payload = Column(JSON, nullable=False)
    # Written in the same statement as payload, never on its own
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<CacheRecord(collection='{self.collection}', key='{self.key}', updated_at={self.updated_at})>"


class AnalyticsRecord(Base):
    """
    Interaction counters for a match and the interest rating derived from them.
    match_id is a weak reference: the match may not be cached (yet, or anymore)
    """
    __tablename__ = "analytics"

    match_id = Column(String, primary_key=True)
    clicks = Column(Integer, nullable=False, default=0)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    page_views = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    interest_rating = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_updated = Column(DateTime, nullable=False, default=utcnow, index=True)
    last_viewed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_analytics_trending", "last_updated", "interest_rating"),
    )

    def __repr__(self):
        return f"<AnalyticsRecord(match_id='{self.match_id}', clicks={self.clicks}, interest_rating={self.interest_rating})>"
