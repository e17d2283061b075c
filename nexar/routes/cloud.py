from typing import List

from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import CloudSaveIn, CloudSaveOut, CloudSaveSummaryOut, CloudSaveUpdateIn, MessageOut
from ..services import cloud_saves
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("/saves", response_model=List[CloudSaveSummaryOut])
def list_saves(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return cloud_saves.list_saves(store, current_account.id)


@router.get("/saves/{save_id}", response_model=CloudSaveOut)
def get_save(
    save_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return cloud_saves.get_save(store, current_account.id, save_id)


@router.post("/saves", response_model=CloudSaveOut, status_code=201)
def upload_save(
    payload: CloudSaveIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return cloud_saves.create_save(store, current_account.id, payload.filename, payload.data, payload.game_id)


@router.put("/saves/{save_id}", response_model=CloudSaveOut)
def update_save(
    save_id: str,
    payload: CloudSaveUpdateIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return cloud_saves.update_save(
        store, current_account.id, save_id, filename=payload.filename, data=payload.data
    )


@router.delete("/saves/{save_id}", response_model=MessageOut)
def delete_save(
    save_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    cloud_saves.delete_save(store, current_account.id, save_id)
    return {"message": "Save deleted"}
