"""
Database connection and setup
SQLite database with SQLAlchemy
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pitchside.models import Base
from config.settings import settings

logger = logging.getLogger("db")


def create_session_factory(database_url: str) -> sessionmaker:
    """
    Build an engine + session factory for a database URL and create tables.
    Safe to call multiple times (won't recreate existing tables)
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}  # Needed for SQLite

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False  # Set to True to see SQL queries
    )
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {database_url}")
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


_session_factory = None


def get_session_factory() -> sessionmaker:
    """Get or create the session factory for the configured database."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(settings.database_url)
    return _session_factory
