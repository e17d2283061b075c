from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Sequence

from ..core.errors import NexarError
from .base import Predicate, Record, RecordStore

logger = logging.getLogger(__name__)


class JsonFileRecordStore(RecordStore):
    """One JSON array file per collection under ``root``.

    Writes go to a temporary file that replaces the collection file, so a
    reader never observes a half-written array.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def _read(self, collection: str) -> list[Record]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Unreadable collection file %s: %s", path, exc)
            raise NexarError("Storage failure") from exc
        if not isinstance(data, list):
            logger.error("Collection file %s does not hold a JSON array", path)
            raise NexarError("Storage failure")
        return [item for item in data if isinstance(item, dict)]

    def _write(self, collection: str, records: list[Record]) -> None:
        path = self._path(collection)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{collection}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2, default=str)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _scan(self, collection: str) -> list[Record]:
        with self._lock:
            return self._read(collection)

    def _insert(self, collection: str, document: Record, groups: Sequence[tuple[str, ...]]) -> None:
        with self._lock:
            records = self._read(collection)
            violated = self._violated_group(records, document, groups)
            if violated:
                self._raise_duplicate(collection, violated)
            records.append(document)
            self._write(collection, records)

    def _update(self, collection: str, predicate: Predicate, changes: Record) -> Optional[Record]:
        with self._lock:
            records = self._read(collection)
            for index, record in enumerate(records):
                if predicate(record):
                    merged = {**record, **changes}
                    records[index] = merged
                    self._write(collection, records)
                    return merged
            return None

    def _delete(self, collection: str, predicate: Predicate) -> bool:
        with self._lock:
            records = self._read(collection)
            for index, record in enumerate(records):
                if predicate(record):
                    del records[index]
                    self._write(collection, records)
                    return True
            return False
