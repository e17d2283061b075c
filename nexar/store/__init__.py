from __future__ import annotations

import threading
from typing import Optional

from ..core.config import DATA_DIR, DATABASE_URL, RECORD_STORE_BACKEND
from ..core.errors import ValidationError
from .base import Collection, Predicate, Record, RecordStore, match_all, where
from .json_file import JsonFileRecordStore
from .sql import SqlRecordStore

__all__ = [
    "Collection",
    "JsonFileRecordStore",
    "Predicate",
    "Record",
    "RecordStore",
    "SqlRecordStore",
    "build_store",
    "get_store",
    "match_all",
    "where",
]

_STORE_LOCK = threading.Lock()
_store: Optional[RecordStore] = None


def build_store(backend: str = RECORD_STORE_BACKEND) -> RecordStore:
    normalized = str(backend or "").strip().lower()
    if normalized == "sql":
        return SqlRecordStore(DATABASE_URL)
    if normalized == "json":
        return JsonFileRecordStore(DATA_DIR)
    raise ValidationError(f"Unsupported record store backend: {backend}")


def get_store() -> RecordStore:
    global _store
    if _store is not None:
        return _store
    with _STORE_LOCK:
        if _store is None:
            _store = build_store()
    return _store
