from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional

from ..core.catalog import AchievementDefinition
from ..core.clock import parse_timestamp, utcnow
from ..core.config import PASSWORD_MIN_LENGTH, PASSWORD_RESET_TTL_MINUTES
from ..core.errors import Conflict, NotFound, Unauthorized, ValidationError
from ..core.locks import identity_locks
from ..core.security import hash_secret, issue_token, verify_secret
from ..entities import Account, AccountPatch
from ..store import Collection, RecordStore, where
from . import achievements
from .notifications import EmailService

logger = logging.getLogger(__name__)

_INVALID_LOGIN = "Invalid email or password"
_INVALID_RESET = "Invalid or expired reset token"


def normalize_email(value: object) -> str:
    return str(value or "").strip().lower()


def username_key(value: object) -> str:
    return str(value or "").strip().lower()


def _email_lock(email: str) -> str:
    return f"email:{email}"


def _username_lock(username: str) -> str:
    return f"username:{username_key(username)}"


def _new_token() -> str:
    return uuid.uuid4().hex


def _check_password(password: str) -> None:
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")


def get_account(store: RecordStore, account_id: str) -> Account:
    record = store.find_one(Collection.USERS, where(id=account_id))
    if record is None:
        raise NotFound("User not found")
    return Account.model_validate(record)


def find_account_by_email(store: RecordStore, email: str) -> Optional[Account]:
    normalized = normalize_email(email)
    if not normalized:
        return None
    record = store.find_one(Collection.USERS, where(email=normalized))
    return Account.model_validate(record) if record else None


def find_account_by_username(store: RecordStore, username: str) -> Optional[Account]:
    key = username_key(username)
    if not key:
        return None
    record = store.find_one(Collection.USERS, lambda user: username_key(user.get("username")) == key)
    return Account.model_validate(record) if record else None


def save_account(store: RecordStore, account_id: str, patch: AccountPatch) -> Account:
    updated = store.update_one(Collection.USERS, where(id=account_id), patch.changes())
    if updated is None:
        raise NotFound("User not found")
    return Account.model_validate(updated)


def register(
    store: RecordStore,
    email: str,
    username: str,
    password: str,
    email_service: Optional[EmailService] = None,
) -> tuple[Account, list[AchievementDefinition]]:
    normalized_email = normalize_email(email)
    cleaned_username = str(username or "").strip()
    if not normalized_email or not cleaned_username or not password:
        raise ValidationError("Email, username, and password are required")
    _check_password(password)

    with identity_locks.hold(_email_lock(normalized_email), _username_lock(cleaned_username)):
        if find_account_by_email(store, normalized_email):
            raise Conflict("Email already in use", extra={"field": "email"})
        if find_account_by_username(store, cleaned_username):
            raise Conflict("Username already taken", extra={"field": "username"})
        account = Account(
            email=normalized_email,
            username=cleaned_username,
            password_hash=hash_secret(password),
            verification_token=_new_token(),
        )
        store.insert_one(Collection.USERS, account.to_record(), unique=[("email",)])

    logger.info("Registered account %s", account.id)
    unlocked = achievements.on_account_created(store, account.id)
    if email_service is not None:
        email_service.send_verification_email(account.email, account.username, account.verification_token)
    return account, unlocked


def authenticate(store: RecordStore, email: str, password: str) -> tuple[str, Account]:
    if not email or not password:
        raise ValidationError("Email and password are required")
    account = find_account_by_email(store, email)
    # Unknown, wrong and unverified all look the same to the caller.
    if account is None or not verify_secret(password, account.password_hash):
        raise Unauthorized(_INVALID_LOGIN)
    if not account.verified:
        raise Unauthorized(_INVALID_LOGIN)
    token = issue_token({"sub": account.id, "email": account.email, "username": account.username})
    return token, account


def verify_email(store: RecordStore, token: str) -> Account:
    if not token:
        raise ValidationError("Verification token is required")
    patch = AccountPatch(verified=True, verification_token=None)
    updated = store.update_one(Collection.USERS, where(verification_token=token), patch.changes())
    if updated is None:
        raise ValidationError("Invalid verification token")
    account = Account.model_validate(updated)
    logger.info("Verified email for %s", account.id)
    return account


def resend_verification(store: RecordStore, email: str, email_service: Optional[EmailService] = None) -> None:
    account = find_account_by_email(store, email)
    if account is None or account.verified:
        return
    account = save_account(store, account.id, AccountPatch(verification_token=_new_token()))
    if email_service is not None:
        email_service.send_verification_email(account.email, account.username, account.verification_token)


def request_password_reset(store: RecordStore, email: str, email_service: Optional[EmailService] = None) -> None:
    account = find_account_by_email(store, email)
    if account is None or not account.verified:
        return
    patch = AccountPatch(
        password_reset_token=_new_token(),
        password_reset_expires_at=utcnow() + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES),
    )
    account = save_account(store, account.id, patch)
    if email_service is not None:
        email_service.send_password_reset_email(account.email, account.username, account.password_reset_token)


def reset_password(store: RecordStore, token: str, new_password: str) -> Account:
    if not token or not new_password:
        raise ValidationError("Token and new password are required")
    _check_password(new_password)
    record = store.find_one(Collection.USERS, where(password_reset_token=token))
    if record is None:
        raise ValidationError(_INVALID_RESET)
    account = Account.model_validate(record)
    cleared = {"password_reset_token": None, "password_reset_expires_at": None}

    expires_at = parse_timestamp(account.password_reset_expires_at)
    if expires_at is None or expires_at < utcnow():
        save_account(store, account.id, AccountPatch(**cleared))
        raise ValidationError(_INVALID_RESET)

    updated = store.update_one(
        Collection.USERS,
        where(id=account.id, password_reset_token=token),
        AccountPatch(password_hash=hash_secret(new_password), **cleared).changes(),
    )
    if updated is None:
        raise ValidationError(_INVALID_RESET)
    logger.info("Password reset for %s", account.id)
    return Account.model_validate(updated)


def update_profile(
    store: RecordStore,
    account_id: str,
    avatar_url: Optional[str] = None,
    bio: Optional[str] = None,
    username: Optional[str] = None,
) -> tuple[Account, list[AchievementDefinition]]:
    """Validate every supplied field, then write them in one update."""
    current = get_account(store, account_id)
    fields: dict[str, str] = {}
    if avatar_url is not None:
        fields["avatar_url"] = avatar_url.strip()
    if bio is not None:
        fields["bio"] = bio.strip()

    lock_keys = []
    if username is not None:
        cleaned = username.strip()
        if not cleaned:
            raise ValidationError("Username cannot be empty")
        fields["username"] = cleaned
        lock_keys.append(_username_lock(cleaned))

    with identity_locks.hold(*lock_keys):
        if "username" in fields and username_key(fields["username"]) != username_key(current.username):
            existing = find_account_by_username(store, fields["username"])
            if existing is not None and existing.id != account_id:
                raise Conflict("Username already taken", extra={"field": "username"})
        account = save_account(store, account_id, AccountPatch(**fields)) if fields else current

    unlocked = achievements.on_profile_changed(store, account)
    return account, unlocked


def set_avatar(store: RecordStore, account_id: str, avatar_reference: str) -> tuple[Account, list[AchievementDefinition]]:
    if not avatar_reference or not avatar_reference.strip():
        raise ValidationError("Avatar reference is required")
    return update_profile(store, account_id, avatar_url=avatar_reference)
