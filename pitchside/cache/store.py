"""
Persistent envelope store.

Every cached aggregate is one row in cache_entries: (collection, key) ->
payload + updated_at. Writes are upserts (last writer wins) and always set
payload and updated_at in the same statement.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from pitchside.models import CacheRecord
from pitchside.normalizer import sanitize_keys
from pitchside.utils.helpers import utcnow
from .core import CacheEnvelope

logger = logging.getLogger("cache.store")

# Logical collections
LEAGUES = "leagues"
FIXTURES = "fixtures"
MATCHES = "matches"
PREDICTIONS = "predictions"

LEAGUES_KEY = "all"


class EnvelopeStore:
    """
    Key/document store of CacheEnvelopes backed by SQLAlchemy.
    """

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

    def get(self, collection: str, key: str) -> Optional[CacheEnvelope]:
        """Read an envelope, or None if nothing is stored under the key."""
        with self._session() as session:
            record = session.get(CacheRecord, (collection, key))
            if record is None:
                return None
            return CacheEnvelope(payload=record.payload, updated_at=record.updated_at)

    def put(
        self,
        collection: str,
        key: str,
        payload: Any,
        updated_at: Optional[datetime] = None,
    ) -> CacheEnvelope:
        """
        Write payload and its stamp together. Dotted keys are sanitized first.

        Returns:
            The envelope as stored
        """
        envelope = CacheEnvelope(payload=sanitize_keys(payload), updated_at=updated_at or utcnow())
        with self._session() as session:
            self._upsert(session, collection, key, envelope)
        return envelope

    def put_many(self, collection: str, items: Dict[str, Any]) -> int:
        """Write several envelopes of one collection in one transaction."""
        if not items:
            return 0
        now = utcnow()
        with self._session() as session:
            for key, payload in items.items():
                self._upsert(session, collection, key, CacheEnvelope(sanitize_keys(payload), now))
        return len(items)

    def _upsert(self, session: Session, collection: str, key: str, envelope: CacheEnvelope) -> None:
        if session.get_bind().dialect.name == "sqlite":
            stmt = sqlite_insert(CacheRecord).values(
                collection=collection,
                key=key,
                payload=envelope.payload,
                updated_at=envelope.updated_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[CacheRecord.collection, CacheRecord.key],
                set_={"payload": stmt.excluded.payload, "updated_at": stmt.excluded.updated_at},
            )
            session.execute(stmt)
        else:
            session.merge(CacheRecord(
                collection=collection,
                key=key,
                payload=envelope.payload,
                updated_at=envelope.updated_at,
            ))

    def delete_where(self, collection: str, predicate: Callable[[Any], bool]) -> int:
        """
        Delete every envelope in a collection whose payload matches predicate.

        Returns:
            Number of envelopes deleted
        """
        doomed = [key for key, envelope in self.items(collection) if predicate(envelope.payload)]
        if not doomed:
            return 0
        with self._session() as session:
            session.execute(
                delete(CacheRecord).where(CacheRecord.collection == collection, CacheRecord.key.in_(doomed))
            )
        return len(doomed)

    def items(self, collection: str) -> List[Tuple[str, CacheEnvelope]]:
        with self._session() as session:
            rows = session.execute(
                select(CacheRecord).where(CacheRecord.collection == collection).order_by(CacheRecord.key)
            ).scalars().all()
            return [(row.key, CacheEnvelope(payload=row.payload, updated_at=row.updated_at)) for row in rows]

    def count(self, collection: Optional[str] = None) -> int:
        with self._session() as session:
            stmt = select(func.count()).select_from(CacheRecord)
            if collection:
                stmt = stmt.where(CacheRecord.collection == collection)
            return session.execute(stmt).scalar_one()
