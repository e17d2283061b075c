from __future__ import annotations

from typing import Optional

from ..core.clock import utcnow
from ..core.errors import NotFound, ValidationError
from ..entities import CloudSave, CloudSavePatch
from ..store import Collection, RecordStore, where


def _owned(owner_id: str, save_id: str):
    return where(id=save_id, owner_id=owner_id)


def list_saves(store: RecordStore, owner_id: str) -> list[CloudSave]:
    """Owner's saves, most recently uploaded first."""
    records = store.find_many(Collection.CLOUD_SAVES, where(owner_id=owner_id))
    saves = [CloudSave.model_validate(record) for record in records]
    saves.sort(key=lambda save: save.uploaded_at, reverse=True)
    return saves


def get_save(store: RecordStore, owner_id: str, save_id: str) -> CloudSave:
    record = store.find_one(Collection.CLOUD_SAVES, _owned(owner_id, save_id))
    if record is None:
        raise NotFound("Cloud save not found")
    return CloudSave.model_validate(record)


def create_save(
    store: RecordStore, owner_id: str, filename: str, data: str, game_id: Optional[str] = None
) -> CloudSave:
    if not filename or not data:
        raise ValidationError("Filename and data are required")
    save = CloudSave(owner_id=owner_id, filename=filename, data=data, game_id=game_id or "default")
    store.insert_one(Collection.CLOUD_SAVES, save.to_record())
    return save


def update_save(
    store: RecordStore,
    owner_id: str,
    save_id: str,
    filename: Optional[str] = None,
    data: Optional[str] = None,
) -> CloudSave:
    fields = {"uploaded_at": utcnow()}
    if filename:
        fields["filename"] = filename
    if data:
        fields["data"] = data
    updated = store.update_one(Collection.CLOUD_SAVES, _owned(owner_id, save_id), CloudSavePatch(**fields).changes())
    if updated is None:
        raise NotFound("Cloud save not found")
    return CloudSave.model_validate(updated)


def delete_save(store: RecordStore, owner_id: str, save_id: str) -> None:
    if not store.delete_one(Collection.CLOUD_SAVES, _owned(owner_id, save_id)):
        raise NotFound("Cloud save not found")
