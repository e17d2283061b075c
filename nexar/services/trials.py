from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..core.catalog import CatalogGame, get_catalog_game
from ..core.errors import NotFound, ValidationError
from ..core.locks import account_key, account_locks
from ..entities import AccountPatch, TrialUsage
from ..store import RecordStore
from .accounts import get_account, save_account
from .subscription import is_subscription_active

logger = logging.getLogger(__name__)


@dataclass
class TrialStatus:
    allowed: bool
    reason: Optional[str] = None
    minutes_played: int = 0
    minutes_remaining: int = 0
    trial_duration: Optional[int] = None
    expired: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _require_game(game_id: str) -> CatalogGame:
    if not game_id:
        raise ValidationError("Game ID is required")
    game = get_catalog_game(game_id)
    if game is None:
        raise NotFound("Game not found")
    return game


def _remaining(game: CatalogGame, usage: TrialUsage) -> int:
    return max(0, int(game.trial_duration_minutes or 0) - usage.minutes_played)


def check_trial(store: RecordStore, account_id: str, game_id: str) -> TrialStatus:
    """Whether ``account_id`` may start or continue a trial of ``game_id``.

    The subscription flag is read from the stored account on every call.
    """
    game = _require_game(game_id)
    if not game.has_trial:
        return TrialStatus(allowed=False, reason="Trial not available for this game")
    account = get_account(store, account_id)
    usage = account.trial_usage.get(game.id, TrialUsage())
    status = dict(
        minutes_played=usage.minutes_played,
        minutes_remaining=_remaining(game, usage),
        trial_duration=game.trial_duration_minutes,
        expired=usage.expired,
    )
    if account.owns(game.id):
        return TrialStatus(allowed=True, reason="owned", **status)
    if not is_subscription_active(account):
        return TrialStatus(allowed=False, reason="Nexar+ subscription required for game trials", **status)
    if usage.expired:
        status["minutes_remaining"] = 0
        return TrialStatus(allowed=False, reason="Trial expired - purchase to continue playing", **status)
    return TrialStatus(allowed=True, **status)


def record_trial_minutes(store: RecordStore, account_id: str, game_id: str, minutes: int) -> TrialStatus:
    """Add played minutes; once the total reaches the trial length it stays expired."""
    game = _require_game(game_id)
    if not game.has_trial:
        raise ValidationError("Trial not available for this game")
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ValidationError("Minutes played must be a non-negative integer")

    with account_locks.hold(account_key(account_id)):
        account = get_account(store, account_id)
        current = account.trial_usage.get(game.id, TrialUsage())
        total = current.minutes_played + minutes
        usage = TrialUsage(
            minutes_played=total,
            expired=current.expired or total >= game.trial_duration_minutes,
        )
        trial_usage = {**account.trial_usage, game.id: usage}
        save_account(store, account_id, AccountPatch(trial_usage=trial_usage))

    if usage.expired and not current.expired:
        logger.info("Trial of %s expired for %s after %s minutes", game.id, account_id, total)
    return TrialStatus(
        allowed=not usage.expired,
        reason="Trial expired - purchase to continue playing" if usage.expired else None,
        minutes_played=usage.minutes_played,
        minutes_remaining=0 if usage.expired else _remaining(game, usage),
        trial_duration=game.trial_duration_minutes,
        expired=usage.expired,
    )
