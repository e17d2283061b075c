from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..core.catalog import (
    ACHIEVEMENTS,
    CHAT_MASTER,
    DEVELOPER,
    FIRST_FRIEND,
    FIRST_LOGIN,
    MESSENGER,
    PROFILE_COMPLETE,
    SOCIAL_BUTTERFLY,
    AchievementDefinition,
    get_achievement,
)
from ..core.errors import Conflict, ValidationError
from ..entities import Account, AchievementUnlock
from ..store import Collection, RecordStore, where

logger = logging.getLogger(__name__)

UNLOCK_KEY = ("account_id", "achievement_id")
SOCIAL_BUTTERFLY_FRIENDS = 5
CHAT_MASTER_MESSAGES = 50


def try_unlock(store: RecordStore, account_id: str, achievement_id: str) -> Optional[AchievementDefinition]:
    """Record one unlock; returns the definition the first time, ``None`` after.

    The existence check is repeated by the store on insert, so two concurrent
    triggers for the same pair still leave a single unlock row.
    """
    definition = get_achievement(achievement_id)
    if definition is None:
        raise ValidationError(f"Unknown achievement: {achievement_id}")
    if store.find_one(Collection.ACHIEVEMENTS, where(account_id=account_id, achievement_id=achievement_id)):
        return None
    unlock = AchievementUnlock(account_id=account_id, achievement_id=achievement_id)
    try:
        store.insert_one(Collection.ACHIEVEMENTS, unlock.to_record(), unique=[UNLOCK_KEY])
    except Conflict:
        return None
    logger.info("Achievement %s unlocked for %s", achievement_id, account_id)
    return definition


def _unlock_all(store: RecordStore, account_id: str, achievement_ids: Iterable[str]) -> list[AchievementDefinition]:
    unlocked = []
    for achievement_id in achievement_ids:
        definition = try_unlock(store, account_id, achievement_id)
        if definition is not None:
            unlocked.append(definition)
    return unlocked


def accepted_friend_count(store: RecordStore, account_id: str) -> int:
    return store.count(
        Collection.FRIEND_EDGES,
        lambda edge: edge.get("status") == "accepted"
        and account_id in (edge.get("sender_id"), edge.get("receiver_id")),
    )


def sent_message_count(store: RecordStore, account_id: str) -> int:
    return store.count(Collection.MESSAGES, where(sender_id=account_id))


def on_account_created(store: RecordStore, account_id: str) -> list[AchievementDefinition]:
    return _unlock_all(store, account_id, [FIRST_LOGIN])


def on_profile_changed(store: RecordStore, account: Account) -> list[AchievementDefinition]:
    if account.avatar_url and account.bio:
        return _unlock_all(store, account.id, [PROFILE_COMPLETE])
    return []


def on_friendship_accepted(store: RecordStore, account_id: str) -> list[AchievementDefinition]:
    # first_friend fires on any count >= 1 so a racing second accept cannot skip it.
    count = accepted_friend_count(store, account_id)
    earned = []
    if count >= 1:
        earned.append(FIRST_FRIEND)
    if count >= SOCIAL_BUTTERFLY_FRIENDS:
        earned.append(SOCIAL_BUTTERFLY)
    return _unlock_all(store, account_id, earned)


def on_message_sent(store: RecordStore, account_id: str) -> list[AchievementDefinition]:
    count = sent_message_count(store, account_id)
    earned = []
    if count >= 1:
        earned.append(MESSENGER)
    if count >= CHAT_MASTER_MESSAGES:
        earned.append(CHAT_MASTER)
    return _unlock_all(store, account_id, earned)


def on_listing_approved(store: RecordStore, developer_id: str) -> list[AchievementDefinition]:
    return _unlock_all(store, developer_id, [DEVELOPER])


def list_account_achievements(store: RecordStore, account_id: str) -> list[dict]:
    unlocks = {
        row.get("achievement_id"): row
        for row in store.find_many(Collection.ACHIEVEMENTS, where(account_id=account_id))
    }
    items = []
    for achievement_id, definition in ACHIEVEMENTS.items():
        row = unlocks.get(achievement_id)
        items.append(
            {
                **definition.to_dict(),
                "unlocked": row is not None,
                "unlocked_at": row.get("unlocked_at") if row else None,
            }
        )
    return items
