from typing import List

from fastapi import APIRouter, Depends

from ..entities import Account, DeveloperGamePatch
from ..schemas import (
    DeveloperApplyIn,
    DeveloperProfileOut,
    DeveloperStatusOut,
    ListingCreateIn,
    ListingOut,
    ListingUpdateIn,
)
from ..services import developer
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.post("/apply", response_model=DeveloperProfileOut, status_code=201)
def apply(
    payload: DeveloperApplyIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.apply(
        store,
        current_account.id,
        payload.studio_name,
        payload.contact_email,
        payload.description,
        website=payload.website,
    )


@router.get("/status", response_model=DeveloperStatusOut)
def status(current_account: Account = Depends(get_current_account)):
    return {"role": current_account.role, "developer_profile": current_account.developer_profile}


@router.get("/games", response_model=List[ListingOut])
def list_games(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.list_own_listings(store, current_account)


@router.post("/games", response_model=ListingOut, status_code=201)
def create_game(
    payload: ListingCreateIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.create_listing(
        store,
        current_account,
        payload.title,
        payload.description,
        payload.genre,
        payload.price,
        tags=payload.tags,
        cover_image=payload.cover_image,
    )


@router.put("/games", response_model=ListingOut)
def update_game(
    payload: ListingUpdateIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    patch = DeveloperGamePatch(**payload.model_dump(exclude_unset=True, exclude={"game_id"}))
    return developer.update_listing(store, current_account, payload.game_id, patch)


@router.get("/games/{game_id}", response_model=ListingOut)
def get_game(
    game_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.get_own_listing(store, current_account, game_id)


@router.post("/games/{game_id}/submit", response_model=ListingOut)
def submit_game(
    game_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.submit_listing(store, current_account, game_id)
