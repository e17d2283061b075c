from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import Conflict, Unauthorized, ValidationError
from ..core.locks import account_key, account_locks
from ..core.ratings import normalize_rating
from ..core.security import hash_secret, verify_secret
from ..entities import AccountPatch, DailyPlaytimeLog, ParentalControls, ParentalSettingsPatch
from ..store import RecordStore
from .accounts import get_account, save_account

logger = logging.getLogger(__name__)

_PIN_PATTERN = re.compile(r"^\d{4,8}$")


@dataclass
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PurchaseDecision:
    allowed: bool
    requires_approval: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PlaytimeReport:
    date: date
    minutes_played: int
    limit: Optional[int]


def _load_controls(store: RecordStore, account_id: str, on: Optional[date] = None) -> ParentalControls:
    return get_account(store, account_id).parental_controls.rolled_over(on)


def _save_controls(store: RecordStore, account_id: str, controls: ParentalControls) -> ParentalControls:
    account = save_account(store, account_id, AccountPatch(parental_controls=controls))
    return account.parental_controls


def _require_pin(controls: ParentalControls, pin: Optional[str]) -> None:
    if not controls.enabled:
        raise ValidationError("Parental controls not enabled")
    if not pin:
        raise ValidationError("PIN is required")
    if not verify_secret(pin, controls.pin_hash):
        raise Unauthorized("Invalid PIN")


def enable(store: RecordStore, account_id: str, pin: str) -> ParentalControls:
    """Turn controls on from a clean default block protected by ``pin``."""
    if not isinstance(pin, str) or not _PIN_PATTERN.match(pin):
        raise ValidationError("PIN must be 4-8 digits")
    with account_locks.hold(account_key(account_id)):
        if _load_controls(store, account_id).enabled:
            raise Conflict("Parental controls already enabled")
        controls = ParentalControls(enabled=True, pin_hash=hash_secret(pin))
        saved = _save_controls(store, account_id, controls)
    logger.info("Parental controls enabled for %s", account_id)
    return saved


def disable(store: RecordStore, account_id: str, pin: str) -> ParentalControls:
    with account_locks.hold(account_key(account_id)):
        _require_pin(_load_controls(store, account_id), pin)
        saved = _save_controls(store, account_id, ParentalControls())
    logger.info("Parental controls disabled for %s", account_id)
    return saved


def verify_pin(store: RecordStore, account_id: str, pin: str) -> bool:
    controls = _load_controls(store, account_id)
    if not controls.enabled or not pin:
        return False
    return verify_secret(pin, controls.pin_hash)


def update_settings(
    store: RecordStore, account_id: str, pin: str, settings: ParentalSettingsPatch
) -> ParentalControls:
    with account_locks.hold(account_key(account_id)):
        controls = _load_controls(store, account_id)
        _require_pin(controls, pin)
        try:
            updated = ParentalControls.model_validate({**controls.to_record(), **settings.changes()})
        except PydanticValidationError as exc:
            raise ValidationError("Invalid parental control settings") from exc
        saved = _save_controls(store, account_id, updated)
    logger.info("Parental settings updated for %s: %s", account_id, sorted(settings.model_fields_set))
    return saved


def get_status(store: RecordStore, account_id: str) -> ParentalControls:
    return _load_controls(store, account_id)


def evaluate_access(controls: ParentalControls, rating: Optional[str] = None) -> AccessDecision:
    if not controls.enabled:
        return AccessDecision(allowed=True)
    content_rating = normalize_rating(rating)
    if content_rating and content_rating in controls.restricted_ratings:
        return AccessDecision(
            allowed=False, reason=f"This game is rated {content_rating} which is restricted"
        )
    limit = controls.playtime_limit_minutes
    if limit is not None and controls.daily_playtime_log.minutes_played >= limit:
        return AccessDecision(
            allowed=False, reason=f"Daily playtime limit of {limit} minutes reached"
        )
    return AccessDecision(allowed=True)


def check_access(
    store: RecordStore,
    account_id: str,
    game_id: Optional[str] = None,
    rating: Optional[str] = None,
) -> AccessDecision:
    decision = evaluate_access(_load_controls(store, account_id), rating)
    if not decision.allowed:
        logger.info("Parental controls denied %s for %s: %s", game_id or "content", account_id, decision.reason)
    return decision


def override(store: RecordStore, account_id: str, pin: str) -> AccessDecision:
    _require_pin(_load_controls(store, account_id), pin)
    logger.info("Parental override granted for %s", account_id)
    return AccessDecision(allowed=True)


def log_playtime(store: RecordStore, account_id: str, minutes: int) -> PlaytimeReport:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ValidationError("Invalid minutes")
    with account_locks.hold(account_key(account_id)):
        controls = _load_controls(store, account_id)
        log = controls.daily_playtime_log
        controls.daily_playtime_log = DailyPlaytimeLog(
            date=log.date, minutes_played=log.minutes_played + minutes
        )
        saved = _save_controls(store, account_id, controls)
    return PlaytimeReport(
        date=saved.daily_playtime_log.date,
        minutes_played=saved.daily_playtime_log.minutes_played,
        limit=saved.playtime_limit_minutes,
    )


def purchase_decision(controls: ParentalControls) -> PurchaseDecision:
    if not controls.enabled:
        return PurchaseDecision(allowed=True)
    if not controls.can_make_purchases:
        return PurchaseDecision(allowed=False, reason="Purchases are disabled by parental controls")
    return PurchaseDecision(allowed=True, requires_approval=controls.requires_parent_approval)


def check_purchase(store: RecordStore, account_id: str) -> PurchaseDecision:
    return purchase_decision(_load_controls(store, account_id))
