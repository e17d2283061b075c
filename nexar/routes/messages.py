from typing import List

from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import ChatMessageIn, ChatMessageOut, ChatMessageSentOut, ConversationOut
from ..services import social
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.post("", response_model=ChatMessageSentOut, status_code=201)
def send_message(
    payload: ChatMessageIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    message, unlocked = social.send_message(store, current_account.id, payload.recipient_id, payload.text)
    return {**message.model_dump(), "unlocked_achievements": [item.to_dict() for item in unlocked]}


@router.get("/conversations", response_model=List[ConversationOut])
def list_conversations(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return [
        {
            "partner": item["partner"].model_dump(),
            "last_message": item["last_message"].model_dump(),
            "unread_count": item["unread_count"],
        }
        for item in social.list_conversations(store, current_account.id)
    ]


@router.get("/{partner_id}", response_model=List[ChatMessageOut])
def conversation(
    partner_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return social.conversation(store, current_account.id, partner_id)
