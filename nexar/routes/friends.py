from typing import List

from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import FriendAcceptOut, FriendRequestIn, FriendRequestOut, MessageOut, PublicAccountOut
from ..services import social
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("", response_model=List[PublicAccountOut])
def list_friends(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return social.list_friends(store, current_account.id)


@router.post("/request", response_model=FriendRequestOut, status_code=201)
def send_request(
    payload: FriendRequestIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return social.send_friend_request(store, current_account.id, payload.username)


@router.get("/requests/incoming", response_model=List[FriendRequestOut])
def incoming_requests(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return [
        {**edge.model_dump(), "sender": sender.model_dump()}
        for edge, sender in social.list_incoming_requests(store, current_account.id)
    ]


@router.get("/requests/outgoing", response_model=List[FriendRequestOut])
def outgoing_requests(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return [
        {**edge.model_dump(), "receiver": receiver.model_dump()}
        for edge, receiver in social.list_outgoing_requests(store, current_account.id)
    ]


@router.post("/requests/{request_id}/accept", response_model=FriendAcceptOut)
def accept_request(
    request_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    _, unlocked = social.accept_friend_request(store, current_account.id, request_id)
    mine = unlocked.get(current_account.id, [])
    return {
        "message": "Friend request accepted",
        "unlocked_achievements": [item.to_dict() for item in mine],
    }


@router.post("/requests/{request_id}/reject", response_model=MessageOut)
def reject_request(
    request_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    social.reject_friend_request(store, current_account.id, request_id)
    return {"message": "Friend request rejected"}


@router.delete("/{friend_id}", response_model=MessageOut)
def remove_friend(
    friend_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    social.remove_friend(store, current_account.id, friend_id)
    return {"message": "Friend removed"}
