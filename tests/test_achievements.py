from concurrent.futures import ThreadPoolExecutor

import pytest

from nexar.core.catalog import ACHIEVEMENTS
from nexar.core.errors import ValidationError
from nexar.services import achievements
from nexar.store import Collection, where


def test_try_unlock_is_idempotent(store, make_account):
    account = make_account()
    first = achievements.try_unlock(store, account.id, "chat_master")
    assert first is not None and first.name == "Chat Master"
    assert achievements.try_unlock(store, account.id, "chat_master") is None


def test_unknown_achievement_rejected(store, make_account):
    account = make_account()
    with pytest.raises(ValidationError):
        achievements.try_unlock(store, account.id, "speedrunner")


def test_concurrent_unlocks_store_one_row(store, make_account):
    account = make_account()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: achievements.try_unlock(store, account.id, "developer"), range(8)))

    assert sum(1 for item in results if item is not None) == 1
    rows = store.find_many(Collection.ACHIEVEMENTS, where(account_id=account.id, achievement_id="developer"))
    assert len(rows) == 1


def test_account_listing_merges_catalog(store, make_account):
    account = make_account()
    listing = achievements.list_account_achievements(store, account.id)

    assert [item["id"] for item in listing] == list(ACHIEVEMENTS)
    unlocked = {item["id"]: item for item in listing if item["unlocked"]}
    assert set(unlocked) == {"first_login"}
    assert unlocked["first_login"]["unlocked_at"]


def test_chat_master_after_fifty_messages(store, make_account):
    account = make_account()
    for index in range(49):
        store.insert_one(Collection.MESSAGES, {"sender_id": account.id, "recipient_id": "x", "text": str(index)})
    earned = achievements.on_message_sent(store, account.id)
    assert [item.id for item in earned] == ["messenger"]

    store.insert_one(Collection.MESSAGES, {"sender_id": account.id, "recipient_id": "x", "text": "50"})
    earned = achievements.on_message_sent(store, account.id)
    assert [item.id for item in earned] == ["chat_master"]
