from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..core.errors import Conflict, ValidationError
from ..models import generate_id

Record = dict[str, Any]
Predicate = Callable[[Mapping[str, Any]], bool]


class Collection(str, Enum):
    USERS = "users"
    FRIEND_EDGES = "friends"
    MESSAGES = "messages"
    ACHIEVEMENTS = "achievements"
    CLOUD_SAVES = "cloud_saves"
    WALLET_TRANSACTIONS = "wallet_transactions"
    DEVELOPER_GAMES = "developer_games"


def where(**fields: Any) -> Predicate:
    """Predicate matching documents whose fields equal every keyword given."""

    def _match(record: Mapping[str, Any]) -> bool:
        return all(record.get(key) == value for key, value in fields.items())

    return _match


def match_all(record: Mapping[str, Any]) -> bool:
    return True


def _collection_name(collection: Collection | str) -> str:
    if isinstance(collection, Collection):
        return collection.value
    name = str(collection or "").strip()
    if not name:
        raise ValidationError("Collection name is required")
    return name


class RecordStore(ABC):
    """Keyed collections of JSON documents.

    Each primitive is atomic for a single document. Nothing here spans two
    calls: a ``find_one`` followed by an ``update_one`` can interleave with
    other writers, and callers that need read-modify-write semantics must
    serialize on their own keys.

    ``delete_one`` and ``update_one`` act on the first match in insertion
    order when a predicate matches several documents.
    """

    def find_one(self, collection: Collection | str, predicate: Predicate = match_all) -> Optional[Record]:
        for record in self._scan(_collection_name(collection)):
            if predicate(record):
                return copy.deepcopy(record)
        return None

    def find_many(self, collection: Collection | str, predicate: Predicate = match_all) -> list[Record]:
        return [
            copy.deepcopy(record)
            for record in self._scan(_collection_name(collection))
            if predicate(record)
        ]

    def count(self, collection: Collection | str, predicate: Predicate = match_all) -> int:
        return sum(1 for record in self._scan(_collection_name(collection)) if predicate(record))

    def insert_one(
        self,
        collection: Collection | str,
        record: Mapping[str, Any],
        unique: Sequence[Sequence[str]] = (),
    ) -> Record:
        """Store ``record``, assigning an ``id`` when it has none.

        ``unique`` lists field groups that must not already be shared with a
        stored document (each group is compared as a composite key). The check
        and the insert happen under the same single-operation guarantee, so two
        racing inserts cannot both pass it.
        """
        if not isinstance(record, Mapping):
            raise ValidationError("Record must be a mapping")
        document = copy.deepcopy(dict(record))
        record_id = document.get("id")
        if record_id is None or record_id == "":
            document["id"] = generate_id()
        elif not isinstance(record_id, str):
            raise ValidationError("Record identifier must be a string")
        groups = [tuple(group) for group in unique if group]
        self._insert(_collection_name(collection), document, groups)
        return copy.deepcopy(document)

    def update_one(
        self,
        collection: Collection | str,
        predicate: Predicate,
        changes: Mapping[str, Any],
    ) -> Optional[Record]:
        """Shallow-merge ``changes`` into the first match; ``None`` when nothing matches."""
        if not isinstance(changes, Mapping):
            raise ValidationError("Changes must be a mapping")
        if "id" in changes:
            raise ValidationError("Record identifier cannot be changed")
        updated = self._update(_collection_name(collection), predicate, copy.deepcopy(dict(changes)))
        return copy.deepcopy(updated) if updated is not None else None

    def delete_one(self, collection: Collection | str, predicate: Predicate) -> bool:
        return self._delete(_collection_name(collection), predicate)

    @staticmethod
    def _violated_group(
        existing: Iterable[Mapping[str, Any]],
        document: Mapping[str, Any],
        groups: Sequence[tuple[str, ...]],
    ) -> Optional[tuple[str, ...]]:
        ids = set()
        for record in existing:
            ids.add(record.get("id"))
            for group in groups:
                if all(record.get(field) == document.get(field) for field in group):
                    return group
        if document["id"] in ids:
            return ("id",)
        return None

    def _raise_duplicate(self, collection: str, group: tuple[str, ...]) -> None:
        raise Conflict(
            f"Duplicate {', '.join(group)} in {collection}",
            extra={"fields": list(group)},
        )

    @abstractmethod
    def _scan(self, collection: str) -> list[Record]:
        """Snapshot of the collection in insertion order."""

    @abstractmethod
    def _insert(self, collection: str, document: Record, groups: Sequence[tuple[str, ...]]) -> None:
        ...

    @abstractmethod
    def _update(self, collection: str, predicate: Predicate, changes: Record) -> Optional[Record]:
        ...

    @abstractmethod
    def _delete(self, collection: str, predicate: Predicate) -> bool:
        ...
