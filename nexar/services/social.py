from __future__ import annotations

import logging
from typing import Any, Optional

from ..core.catalog import AchievementDefinition
from ..core.errors import Conflict, Forbidden, NotFound, ValidationError
from ..core.locks import identity_locks, pair_key
from ..entities import Account, FriendEdge, Message
from ..store import Collection, RecordStore, where
from . import achievements
from .accounts import find_account_by_username

logger = logging.getLogger(__name__)


def _between(first_id: str, second_id: str, status: Optional[str] = None):
    def _match(edge) -> bool:
        if status is not None and edge.get("status") != status:
            return False
        pair = (edge.get("sender_id"), edge.get("receiver_id"))
        return pair in ((first_id, second_id), (second_id, first_id))

    return _match


def _load_account(store: RecordStore, account_id: str) -> Optional[Account]:
    record = store.find_one(Collection.USERS, where(id=account_id))
    return Account.model_validate(record) if record else None


def find_edge(store: RecordStore, first_id: str, second_id: str) -> Optional[FriendEdge]:
    record = store.find_one(Collection.FRIEND_EDGES, _between(first_id, second_id))
    return FriendEdge.model_validate(record) if record else None


def are_friends(store: RecordStore, first_id: str, second_id: str) -> bool:
    return store.find_one(Collection.FRIEND_EDGES, _between(first_id, second_id, "accepted")) is not None


def send_friend_request(store: RecordStore, sender_id: str, username: str) -> FriendEdge:
    if not username or not username.strip():
        raise ValidationError("Username is required")
    target = find_account_by_username(store, username)
    if target is None:
        raise NotFound("User not found")
    if target.id == sender_id:
        raise ValidationError("Cannot send friend request to yourself")

    with identity_locks.hold(pair_key(sender_id, target.id)):
        existing = find_edge(store, sender_id, target.id)
        if existing is not None:
            if existing.status == "accepted":
                raise Conflict("Already friends")
            raise Conflict("Friend request already exists")
        edge = FriendEdge(sender_id=sender_id, receiver_id=target.id)
        store.insert_one(Collection.FRIEND_EDGES, edge.to_record())
    logger.info("Friend request %s from %s to %s", edge.id, sender_id, target.id)
    return edge


def _pending_edge_for_receiver(store: RecordStore, account_id: str, request_id: str) -> FriendEdge:
    record = store.find_one(Collection.FRIEND_EDGES, where(id=request_id))
    if record is None:
        raise NotFound("Friend request not found")
    edge = FriendEdge.model_validate(record)
    if edge.receiver_id != account_id:
        raise Forbidden("Not authorized")
    return edge


def _transition(store: RecordStore, edge: FriendEdge, status: str) -> FriendEdge:
    with identity_locks.hold(pair_key(edge.sender_id, edge.receiver_id)):
        updated = store.update_one(
            Collection.FRIEND_EDGES,
            where(id=edge.id, status="pending"),
            {"status": status},
        )
    if updated is None:
        raise Conflict("Request already processed")
    return FriendEdge.model_validate(updated)


def accept_friend_request(
    store: RecordStore, account_id: str, request_id: str
) -> tuple[FriendEdge, dict[str, list[AchievementDefinition]]]:
    """Accept a pending request addressed to ``account_id``.

    Friend-count achievements are evaluated for both parties with counts read
    after the edge flipped; the mapping holds what each of them unlocked.
    """
    edge = _transition(store, _pending_edge_for_receiver(store, account_id, request_id), "accepted")
    unlocked = {
        party: achievements.on_friendship_accepted(store, party)
        for party in (edge.receiver_id, edge.sender_id)
    }
    logger.info("Friend request %s accepted", edge.id)
    return edge, unlocked


def reject_friend_request(store: RecordStore, account_id: str, request_id: str) -> FriendEdge:
    return _transition(store, _pending_edge_for_receiver(store, account_id, request_id), "rejected")


def remove_friend(store: RecordStore, account_id: str, friend_id: str) -> None:
    with identity_locks.hold(pair_key(account_id, friend_id)):
        deleted = store.delete_one(Collection.FRIEND_EDGES, _between(account_id, friend_id, "accepted"))
    if not deleted:
        raise NotFound("Friend not found")
    logger.info("Friendship between %s and %s removed", account_id, friend_id)


def list_friends(store: RecordStore, account_id: str) -> list[Account]:
    edges = store.find_many(
        Collection.FRIEND_EDGES,
        lambda edge: edge.get("status") == "accepted"
        and account_id in (edge.get("sender_id"), edge.get("receiver_id")),
    )
    friends = []
    for record in edges:
        friend = _load_account(store, FriendEdge.model_validate(record).other_party(account_id))
        if friend is not None:
            friends.append(friend)
    return friends


def list_incoming_requests(store: RecordStore, account_id: str) -> list[tuple[FriendEdge, Account]]:
    pending = store.find_many(Collection.FRIEND_EDGES, where(receiver_id=account_id, status="pending"))
    items = []
    for record in pending:
        edge = FriendEdge.model_validate(record)
        sender = _load_account(store, edge.sender_id)
        if sender is not None:
            items.append((edge, sender))
    return items


def list_outgoing_requests(store: RecordStore, account_id: str) -> list[tuple[FriendEdge, Account]]:
    pending = store.find_many(Collection.FRIEND_EDGES, where(sender_id=account_id, status="pending"))
    items = []
    for record in pending:
        edge = FriendEdge.model_validate(record)
        receiver = _load_account(store, edge.receiver_id)
        if receiver is not None:
            items.append((edge, receiver))
    return items


def send_message(
    store: RecordStore, sender_id: str, recipient_id: str, text: str
) -> tuple[Message, list[AchievementDefinition]]:
    cleaned = (text or "").strip()
    if not recipient_id or not cleaned:
        raise ValidationError("Recipient and message text required")
    if _load_account(store, recipient_id) is None:
        raise NotFound("Recipient not found")
    if not are_friends(store, sender_id, recipient_id):
        raise Forbidden("You can only message friends")

    message = Message(sender_id=sender_id, recipient_id=recipient_id, text=cleaned)
    store.insert_one(Collection.MESSAGES, message.to_record())
    unlocked = achievements.on_message_sent(store, sender_id)
    return message, unlocked


def conversation(store: RecordStore, account_id: str, partner_id: str) -> list[Message]:
    """Messages exchanged with one partner, oldest first."""
    records = store.find_many(
        Collection.MESSAGES,
        lambda msg: (msg.get("sender_id"), msg.get("recipient_id"))
        in ((account_id, partner_id), (partner_id, account_id)),
    )
    return sorted((Message.model_validate(record) for record in records), key=lambda msg: msg.sent_at)


def list_conversations(store: RecordStore, account_id: str) -> list[dict[str, Any]]:
    latest: dict[str, Message] = {}
    records = store.find_many(
        Collection.MESSAGES,
        lambda msg: account_id in (msg.get("sender_id"), msg.get("recipient_id")),
    )
    for record in records:
        message = Message.model_validate(record)
        partner_id = message.recipient_id if message.sender_id == account_id else message.sender_id
        current = latest.get(partner_id)
        if current is None or message.sent_at >= current.sent_at:
            latest[partner_id] = message

    conversations = []
    for partner_id, last_message in latest.items():
        partner = _load_account(store, partner_id)
        if partner is None:
            continue
        conversations.append({"partner": partner, "last_message": last_message, "unread_count": 0})
    conversations.sort(key=lambda item: item["last_message"].sent_at, reverse=True)
    return conversations
