from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import AccountOut, AvatarIn, ProfileOut, ProfileUpdateIn, PublicAccountOut
from ..services import accounts
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


def _profile(account: Account, unlocked) -> dict:
    return {
        **account.model_dump(),
        "unlocked_achievements": [item.to_dict() for item in unlocked],
    }


@router.get("/me", response_model=AccountOut)
def get_me(current_account: Account = Depends(get_current_account)):
    return current_account


@router.patch("/me", response_model=ProfileOut)
def update_me(
    payload: ProfileUpdateIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    account, unlocked = accounts.update_profile(
        store,
        current_account.id,
        avatar_url=payload.avatar_url,
        bio=payload.bio,
        username=payload.username,
    )
    return _profile(account, unlocked)


@router.put("/me/avatar", response_model=ProfileOut)
def set_avatar(
    payload: AvatarIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    account, unlocked = accounts.set_avatar(store, current_account.id, payload.avatar_url)
    return _profile(account, unlocked)


@router.get("/{user_id}", response_model=PublicAccountOut)
def get_user(
    user_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return accounts.get_account(store, user_id)
