from __future__ import annotations

import hmac
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.catalog import AchievementDefinition
from ..core.clock import utcnow
from ..core.config import ADMIN_SECRET
from ..core.errors import Conflict, Forbidden, NotFound, ValidationError
from ..core.locks import account_key, account_locks
from ..entities import Account, AccountPatch, DeveloperGame, DeveloperGamePatch, DeveloperProfile
from ..store import Collection, RecordStore, where
from . import achievements
from .accounts import get_account, save_account

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = ("draft", "rejected")
_TEXT_FIELDS = ("title", "description", "genre")


def require_admin(account: Account) -> None:
    if not account.is_admin:
        raise Forbidden("Admin access required")


def require_approved_developer(account: Account) -> None:
    if not account.is_approved_developer:
        raise Forbidden("Only approved developers can manage games")


def _required(value: Optional[str]) -> str:
    return (value or "").strip()


def apply(
    store: RecordStore,
    account_id: str,
    studio_name: str,
    contact_email: str,
    description: str,
    website: str = "",
) -> DeveloperProfile:
    if not _required(studio_name) or not _required(contact_email) or not _required(description):
        raise ValidationError("Studio name, contact email, and description are required")
    with account_locks.hold(account_key(account_id)):
        account = get_account(store, account_id)
        profile = account.developer_profile
        if profile is not None and profile.status == "pending":
            raise Conflict("You already have a pending application")
        if profile is not None and profile.status == "approved":
            raise Conflict("You are already an approved developer")
        application = DeveloperProfile(
            studio_name=studio_name.strip(),
            contact_email=contact_email.strip(),
            website=_required(website),
            description=description.strip(),
        )
        save_account(store, account_id, AccountPatch(developer_profile=application))
    logger.info("Developer application submitted by %s", account_id)
    return application


def list_applications(store: RecordStore, admin: Account) -> list[Account]:
    require_admin(admin)
    records = store.find_many(
        Collection.USERS,
        lambda user: (user.get("developer_profile") or {}).get("status") == "pending",
    )
    return [Account.model_validate(record) for record in records]


def review_application(store: RecordStore, admin: Account, account_id: str, approve: bool) -> Account:
    require_admin(admin)
    if not account_id:
        raise ValidationError("User ID is required")
    with account_locks.hold(account_key(account_id)):
        target = get_account(store, account_id)
        if target.developer_profile is None:
            raise ValidationError("User has no developer application")
        profile = target.developer_profile.model_copy(
            update={"status": "approved" if approve else "rejected"}
        )
        patch = AccountPatch(developer_profile=profile)
        if approve and target.role != "admin":
            patch = AccountPatch(developer_profile=profile, role="developer")
        updated = save_account(store, account_id, patch)
    logger.info("Developer application of %s %s by %s", account_id, profile.status, admin.id)
    return updated


def _load_listing(store: RecordStore, listing_id: str) -> DeveloperGame:
    if not listing_id:
        raise ValidationError("Game ID is required")
    record = store.find_one(Collection.DEVELOPER_GAMES, where(id=listing_id))
    if record is None:
        raise NotFound("Game not found")
    return DeveloperGame.model_validate(record)


def _owned_listing(store: RecordStore, account: Account, listing_id: str) -> DeveloperGame:
    listing = _load_listing(store, listing_id)
    if listing.developer_id != account.id:
        raise Forbidden("You can only manage your own games")
    return listing


def create_listing(
    store: RecordStore,
    account: Account,
    title: str,
    description: str,
    genre: str,
    price: Any,
    tags: Optional[list[str]] = None,
    cover_image: str = "",
) -> DeveloperGame:
    require_approved_developer(account)
    if not _required(title) or not _required(description) or not _required(genre) or price is None:
        raise ValidationError("Title, description, price, and genre are required")
    try:
        listing = DeveloperGame(
            developer_id=account.id,
            title=title.strip(),
            description=description.strip(),
            genre=genre.strip(),
            price=price,
            tags=list(tags or []),
            cover_image=cover_image or "",
        )
    except PydanticValidationError as exc:
        raise ValidationError("Invalid game listing") from exc
    store.insert_one(Collection.DEVELOPER_GAMES, listing.to_record())
    logger.info("Listing %s created by %s", listing.id, account.id)
    return listing


def update_listing(store: RecordStore, account: Account, listing_id: str, patch: DeveloperGamePatch) -> DeveloperGame:
    listing = _owned_listing(store, account, listing_id)
    if "status" in patch.model_fields_set:
        raise ValidationError("Listing status changes through review only")
    # Null and blank fields keep their stored value.
    changes = {}
    for name, value in patch.changes().items():
        if name in _TEXT_FIELDS:
            value = _required(value)
        if value is None or (name in _TEXT_FIELDS and not value):
            continue
        changes[name] = value
    try:
        DeveloperGame.model_validate({**listing.to_record(), **changes})
    except PydanticValidationError as exc:
        raise ValidationError("Invalid game listing") from exc
    changes.update(DeveloperGamePatch(updated_at=utcnow()).changes())
    updated = store.update_one(Collection.DEVELOPER_GAMES, where(id=listing_id), changes)
    if updated is None:
        raise NotFound("Game not found")
    return DeveloperGame.model_validate(updated)


def _change_status(
    store: RecordStore, listing_id: str, allowed_from: tuple[str, ...], status: str
) -> Optional[DeveloperGame]:
    changes = DeveloperGamePatch(status=status, updated_at=utcnow()).changes()
    updated = store.update_one(
        Collection.DEVELOPER_GAMES,
        lambda game: game.get("id") == listing_id and game.get("status") in allowed_from,
        changes,
    )
    return DeveloperGame.model_validate(updated) if updated else None


def submit_listing(store: RecordStore, account: Account, listing_id: str) -> DeveloperGame:
    _owned_listing(store, account, listing_id)
    updated = _change_status(store, listing_id, SUBMITTABLE_STATUSES, "pending")
    if updated is None:
        raise Conflict("Only draft or rejected games can be submitted for review")
    logger.info("Listing %s submitted for review", listing_id)
    return updated


def list_own_listings(store: RecordStore, account: Account) -> list[DeveloperGame]:
    require_approved_developer(account)
    records = store.find_many(Collection.DEVELOPER_GAMES, where(developer_id=account.id))
    return [DeveloperGame.model_validate(record) for record in records]


def get_own_listing(store: RecordStore, account: Account, listing_id: str) -> DeveloperGame:
    return _owned_listing(store, account, listing_id)


def _developer_name(store: RecordStore, developer_id: str) -> str:
    record = store.find_one(Collection.USERS, where(id=developer_id))
    if record is None:
        return "Unknown"
    developer = Account.model_validate(record)
    if developer.developer_profile and developer.developer_profile.studio_name:
        return developer.developer_profile.studio_name
    return developer.username or "Unknown"


def _with_developer(store: RecordStore, listings: list[DeveloperGame]) -> list[tuple[DeveloperGame, str]]:
    return [(listing, _developer_name(store, listing.developer_id)) for listing in listings]


def list_pending_listings(store: RecordStore, admin: Account) -> list[tuple[DeveloperGame, str]]:
    require_admin(admin)
    records = store.find_many(Collection.DEVELOPER_GAMES, where(status="pending"))
    return _with_developer(store, [DeveloperGame.model_validate(record) for record in records])


def review_listing(
    store: RecordStore, admin: Account, listing_id: str, approve: bool
) -> tuple[DeveloperGame, list[AchievementDefinition]]:
    require_admin(admin)
    _load_listing(store, listing_id)
    status = "approved" if approve else "rejected"
    updated = _change_status(store, listing_id, ("pending",), status)
    if updated is None:
        raise Conflict("Only pending games can be reviewed")
    logger.info("Listing %s %s by %s", listing_id, status, admin.id)
    unlocked = achievements.on_listing_approved(store, updated.developer_id) if approve else []
    return updated, unlocked


def list_store_listings(store: RecordStore) -> list[tuple[DeveloperGame, str]]:
    records = store.find_many(Collection.DEVELOPER_GAMES, where(status="approved"))
    return _with_developer(store, [DeveloperGame.model_validate(record) for record in records])


def promote_admin(store: RecordStore, caller: Account, secret: str, target_id: Optional[str] = None) -> Account:
    if not ADMIN_SECRET:
        raise Forbidden("Admin bootstrap is disabled")
    if not secret or not hmac.compare_digest(secret.encode("utf-8"), ADMIN_SECRET.encode("utf-8")):
        raise Forbidden("Invalid secret key")
    account_id = target_id or caller.id
    with account_locks.hold(account_key(account_id)):
        get_account(store, account_id)
        updated = save_account(store, account_id, AccountPatch(role="admin"))
    logger.warning("Account %s promoted to admin by %s", account_id, caller.id)
    return updated
