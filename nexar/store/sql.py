from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError, OperationalError

from ..db import Base, make_engine, make_session_factory
from ..migrations import ensure_schema
from ..models import StoredRecord
from .base import Predicate, Record, RecordStore

logger = logging.getLogger(__name__)


class SqlRecordStore(RecordStore):
    """Documents kept as JSON rows of the ``records`` table.

    Predicates are arbitrary callables, so matching happens in Python over
    the collection's rows; each primitive runs inside one database
    transaction and a process-local lock.
    """

    def __init__(self, database_url: str, engine=None) -> None:
        self.engine = engine or make_engine(database_url)
        self._session_factory = make_session_factory(self.engine)
        self._lock = threading.RLock()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except OperationalError as exc:
            # Schema init may race when several workers start together.
            if "already exists" not in str(exc).lower():
                raise
        ensure_schema(self.engine)

    def _rows(self, db, collection: str) -> list[StoredRecord]:
        return (
            db.query(StoredRecord)
            .filter(StoredRecord.collection == collection)
            .order_by(StoredRecord.seq.asc())
            .all()
        )

    def _scan(self, collection: str) -> list[Record]:
        with self._lock, self._session_factory() as db:
            return [dict(row.body or {}) for row in self._rows(db, collection)]

    def _insert(self, collection: str, document: Record, groups: Sequence[tuple[str, ...]]) -> None:
        with self._lock, self._session_factory() as db:
            existing = [dict(row.body or {}) for row in self._rows(db, collection)]
            violated = self._violated_group(existing, document, groups)
            if violated:
                self._raise_duplicate(collection, violated)
            db.add(
                StoredRecord(
                    collection=collection,
                    record_id=document["id"],
                    body=document,
                )
            )
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                self._raise_duplicate(collection, ("id",))

    def _update(self, collection: str, predicate: Predicate, changes: Record) -> Optional[Record]:
        with self._lock, self._session_factory() as db:
            for row in self._rows(db, collection):
                current = dict(row.body or {})
                if not predicate(current):
                    continue
                merged = {**current, **changes}
                # JSON columns only notice reassignment, not in-place mutation.
                row.body = merged
                row.updated_at = datetime.utcnow()
                db.commit()
                return merged
            return None

    def _delete(self, collection: str, predicate: Predicate) -> bool:
        with self._lock, self._session_factory() as db:
            for row in self._rows(db, collection):
                if predicate(dict(row.body or {})):
                    db.delete(row)
                    db.commit()
                    return True
            return False

    def dispose(self) -> None:
        self.engine.dispose()
