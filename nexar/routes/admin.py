from typing import List

from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import (
    AccountOut,
    ApplicationOut,
    ListingReviewIn,
    ListingReviewOut,
    MessageOut,
    PromoteAdminIn,
    StoreListingOut,
    UserIdIn,
)
from ..services import developer
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("/developer-applications", response_model=List[ApplicationOut])
def list_applications(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return [
        {
            "user_id": account.id,
            "username": account.username,
            "email": account.email,
            "developer_profile": account.developer_profile,
            "created_at": account.created_at,
        }
        for account in developer.list_applications(store, current_account)
    ]


@router.post("/developer-applications/approve", response_model=MessageOut)
def approve_application(
    payload: UserIdIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    developer.review_application(store, current_account, payload.user_id, approve=True)
    return {"message": "Developer application approved"}


@router.post("/developer-applications/reject", response_model=MessageOut)
def reject_application(
    payload: UserIdIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    developer.review_application(store, current_account, payload.user_id, approve=False)
    return {"message": "Developer application rejected"}


@router.get("/games/pending", response_model=List[StoreListingOut])
def pending_games(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return [
        {**listing.model_dump(), "developer_name": name}
        for listing, name in developer.list_pending_listings(store, current_account)
    ]


@router.post("/games/approve", response_model=ListingReviewOut)
def approve_game(
    payload: ListingReviewIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    listing, _ = developer.review_listing(store, current_account, payload.game_id, approve=True)
    return {"message": "Game approved and published to store", "listing": listing}


@router.post("/games/reject", response_model=ListingReviewOut)
def reject_game(
    payload: ListingReviewIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    listing, _ = developer.review_listing(store, current_account, payload.game_id, approve=False)
    return {"message": "Game rejected", "listing": listing}


@router.post("/promote", response_model=AccountOut)
def promote(
    payload: PromoteAdminIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return developer.promote_admin(store, current_account, payload.secret_key, payload.target_user_id)
