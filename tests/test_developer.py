from decimal import Decimal

import pytest

from nexar.core.errors import Conflict, Forbidden, NotFound, ValidationError
from nexar.entities import DeveloperGamePatch
from nexar.services import accounts, developer
from nexar.services.achievements import list_account_achievements


@pytest.fixture()
def admin(store, make_account):
    account = make_account("boss")
    return developer.promote_admin(store, account, "test-admin-secret")


@pytest.fixture()
def studio(store, make_account, admin):
    account = make_account("maker")
    developer.apply(store, account.id, "Pixel Forge", "hello@pixelforge.test", "Indie studio")
    return developer.review_application(store, admin, account.id, approve=True)


def _listing(store, account, **overrides):
    fields = dict(title="Star Miner", description="Mine asteroids", genre="Arcade", price="9.99")
    fields.update(overrides)
    return developer.create_listing(store, account, **fields)


def test_promote_admin_requires_secret(store, make_account):
    account = make_account()
    with pytest.raises(Forbidden):
        developer.promote_admin(store, account, "wrong")
    promoted = developer.promote_admin(store, account, "test-admin-secret")
    assert promoted.role == "admin"


def test_promote_admin_can_target_another_account(store, make_account, admin):
    target = make_account()
    developer.promote_admin(store, admin, "test-admin-secret", target_id=target.id)
    assert accounts.get_account(store, target.id).is_admin
    with pytest.raises(NotFound):
        developer.promote_admin(store, admin, "test-admin-secret", target_id="missing")


def test_application_lifecycle(store, make_account, admin):
    account = make_account()
    with pytest.raises(ValidationError):
        developer.apply(store, account.id, "", "a@b.test", "desc")

    profile = developer.apply(store, account.id, " Studio ", "a@b.test", "desc", website="https://b.test")
    assert (profile.studio_name, profile.status) == ("Studio", "pending")
    with pytest.raises(Conflict):
        developer.apply(store, account.id, "Studio", "a@b.test", "desc")

    with pytest.raises(Forbidden):
        developer.list_applications(store, account)
    assert [a.id for a in developer.list_applications(store, admin)] == [account.id]

    approved = developer.review_application(store, admin, account.id, approve=True)
    assert approved.role == "developer"
    assert approved.is_approved_developer
    assert developer.list_applications(store, admin) == []
    with pytest.raises(Conflict):
        developer.apply(store, account.id, "Studio", "a@b.test", "desc")


def test_rejected_application_can_reapply(store, make_account, admin):
    account = make_account()
    developer.apply(store, account.id, "Studio", "a@b.test", "desc")
    rejected = developer.review_application(store, admin, account.id, approve=False)
    assert rejected.role == "user"
    assert rejected.developer_profile.status == "rejected"
    assert developer.apply(store, account.id, "Studio 2", "a@b.test", "desc").status == "pending"


def test_only_approved_developers_create_listings(store, make_account, studio):
    with pytest.raises(Forbidden):
        _listing(store, make_account())
    with pytest.raises(ValidationError):
        _listing(store, studio, price="-1")
    with pytest.raises(ValidationError):
        _listing(store, studio, title=" ")

    listing = _listing(store, studio, tags=["space"])
    assert (listing.status, listing.price, listing.tags) == ("draft", Decimal("9.99"), ["space"])
    assert [g.id for g in developer.list_own_listings(store, studio)] == [listing.id]


def test_listing_updates_are_owner_only(store, make_account, admin, studio):
    listing = _listing(store, studio)

    other = make_account("rival")
    developer.apply(store, other.id, "Rival", "r@r.test", "desc")
    other = developer.review_application(store, admin, other.id, approve=True)
    with pytest.raises(Forbidden):
        developer.update_listing(store, other, listing.id, DeveloperGamePatch(title="Mine"))
    with pytest.raises(Forbidden):
        developer.get_own_listing(store, other, listing.id)

    with pytest.raises(ValidationError):
        developer.update_listing(store, studio, listing.id, DeveloperGamePatch(status="approved"))
    updated = developer.update_listing(store, studio, listing.id, DeveloperGamePatch(title="Star Miner 2"))
    assert updated.title == "Star Miner 2"
    assert updated.status == "draft"


def test_listing_update_keeps_fields_sent_as_null(store, studio):
    listing = _listing(store, studio, tags=["space"])
    patch = DeveloperGamePatch(title=None, price=None, tags=None, genre="  ", description="Mine comets")
    updated = developer.update_listing(store, studio, listing.id, patch)

    assert (updated.title, updated.price, updated.tags) == ("Star Miner", Decimal("9.99"), ["space"])
    assert (updated.genre, updated.description) == ("Arcade", "Mine comets")
    assert [g.title for g in developer.list_own_listings(store, studio)] == ["Star Miner"]


def test_review_workflow(store, admin, studio):
    listing = _listing(store, studio)
    with pytest.raises(Conflict):
        developer.review_listing(store, admin, listing.id, approve=True)

    assert developer.submit_listing(store, studio, listing.id).status == "pending"
    with pytest.raises(Conflict):
        developer.submit_listing(store, studio, listing.id)
    with pytest.raises(Forbidden):
        developer.review_listing(store, studio, listing.id, approve=True)

    pending = developer.list_pending_listings(store, admin)
    assert [(g.id, name) for g, name in pending] == [(listing.id, "Pixel Forge")]

    approved, unlocked = developer.review_listing(store, admin, listing.id, approve=True)
    assert approved.status == "approved"
    assert [a.id for a in unlocked] == ["developer"]
    with pytest.raises(Conflict):
        developer.review_listing(store, admin, listing.id, approve=False)

    unlocked_ids = {a["id"] for a in list_account_achievements(store, studio.id) if a["unlocked"]}
    assert "developer" in unlocked_ids
    assert [(g.id, name) for g, name in developer.list_store_listings(store)] == [(listing.id, "Pixel Forge")]


def test_rejected_listing_can_be_resubmitted(store, admin, studio):
    listing = _listing(store, studio)
    developer.submit_listing(store, studio, listing.id)
    rejected, unlocked = developer.review_listing(store, admin, listing.id, approve=False)
    assert (rejected.status, unlocked) == ("rejected", [])
    assert developer.list_store_listings(store) == []
    assert developer.submit_listing(store, studio, listing.id).status == "pending"
