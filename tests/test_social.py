import pytest

from nexar.core.errors import Conflict, Forbidden, NotFound, ValidationError
from nexar.services import social


@pytest.fixture()
def pair(make_account):
    return make_account("ada"), make_account("bob")


def _befriend(store, sender, receiver):
    edge = social.send_friend_request(store, sender.id, receiver.username)
    return social.accept_friend_request(store, receiver.id, edge.id)


def test_friend_request_by_username(store, pair):
    ada, bob = pair
    edge = social.send_friend_request(store, ada.id, "BOB")
    assert (edge.sender_id, edge.receiver_id, edge.status) == (ada.id, bob.id, "pending")

    incoming = social.list_incoming_requests(store, bob.id)
    assert [(e.id, sender.id) for e, sender in incoming] == [(edge.id, ada.id)]
    outgoing = social.list_outgoing_requests(store, ada.id)
    assert [receiver.id for _, receiver in outgoing] == [bob.id]


def test_friend_request_rejections(store, pair):
    ada, bob = pair
    with pytest.raises(ValidationError):
        social.send_friend_request(store, ada.id, "ada")
    with pytest.raises(NotFound):
        social.send_friend_request(store, ada.id, "nobody")

    social.send_friend_request(store, ada.id, "bob")
    with pytest.raises(Conflict):
        social.send_friend_request(store, ada.id, "bob")
    with pytest.raises(Conflict):
        social.send_friend_request(store, bob.id, "ada")


def test_accept_is_symmetric_and_unlocks_for_both(store, pair):
    ada, bob = pair
    edge, unlocked = _befriend(store, ada, bob)

    assert edge.status == "accepted"
    assert [a.id for a in unlocked[bob.id]] == ["first_friend"]
    assert [a.id for a in unlocked[ada.id]] == ["first_friend"]
    assert [f.id for f in social.list_friends(store, ada.id)] == [bob.id]
    assert [f.id for f in social.list_friends(store, bob.id)] == [ada.id]
    assert social.are_friends(store, bob.id, ada.id)

    with pytest.raises(Conflict):
        social.send_friend_request(store, bob.id, "ada")


def test_only_receiver_can_answer_once(store, pair):
    ada, bob = pair
    edge = social.send_friend_request(store, ada.id, "bob")
    with pytest.raises(Forbidden):
        social.accept_friend_request(store, ada.id, edge.id)

    social.reject_friend_request(store, bob.id, edge.id)
    with pytest.raises(Conflict):
        social.accept_friend_request(store, bob.id, edge.id)
    with pytest.raises(NotFound):
        social.accept_friend_request(store, bob.id, "missing")
    assert social.list_friends(store, ada.id) == []


def test_social_butterfly_after_five_friends(store, make_account):
    hub = make_account("hub")
    last = {}
    for index in range(5):
        friend = make_account(f"friend{index}")
        _, last = _befriend(store, friend, hub)
    assert "social_butterfly" in [a.id for a in last[hub.id]]


def test_remove_friend(store, pair):
    ada, bob = pair
    _befriend(store, ada, bob)
    social.remove_friend(store, bob.id, ada.id)
    assert not social.are_friends(store, ada.id, bob.id)
    with pytest.raises(NotFound):
        social.remove_friend(store, bob.id, ada.id)
    social.send_friend_request(store, bob.id, "ada")


def test_messages_require_friendship(store, pair):
    ada, bob = pair
    with pytest.raises(Forbidden):
        social.send_message(store, ada.id, bob.id, "hi")
    with pytest.raises(NotFound):
        social.send_message(store, ada.id, "missing", "hi")

    _befriend(store, ada, bob)
    with pytest.raises(ValidationError):
        social.send_message(store, ada.id, bob.id, "   ")

    message, unlocked = social.send_message(store, ada.id, bob.id, " hello ")
    assert message.text == "hello"
    assert [a.id for a in unlocked] == ["messenger"]
    _, unlocked = social.send_message(store, ada.id, bob.id, "again")
    assert unlocked == []


def test_conversations(store, make_account):
    ada, bob, cy = make_account("ada"), make_account("bob"), make_account("cy")
    _befriend(store, ada, bob)
    _befriend(store, ada, cy)

    social.send_message(store, ada.id, bob.id, "one")
    social.send_message(store, bob.id, ada.id, "two")
    social.send_message(store, cy.id, ada.id, "three")

    assert [m.text for m in social.conversation(store, ada.id, bob.id)] == ["one", "two"]
    summary = social.list_conversations(store, ada.id)
    assert [item["partner"].id for item in summary] == [cy.id, bob.id]
    assert summary[1]["last_message"].text == "two"
