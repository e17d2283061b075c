import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from .db import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class StoredRecord(Base):
    """One JSON document of one collection.

    ``seq`` preserves insertion order, which is the tie-break when a
    predicate matches more than one document.
    """

    __tablename__ = "records"
    __table_args__ = (UniqueConstraint("collection", "record_id", name="uq_record_identity"),)

    seq = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(40), nullable=False, index=True)
    record_id = Column(String(36), nullable=False, index=True)
    body = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
