from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Optional

from ..core.catalog import get_catalog_game
from ..core.config import FRONTEND_BASE_URL, NEXAR_PLUS_PRICE, WALLET_CURRENCY
from ..core.errors import Conflict, Forbidden, NotFound, ValidationError
from ..core.locks import account_key, account_locks
from ..entities import Account, AccountPatch, Subscription
from ..store import RecordStore
from .accounts import get_account, save_account
from .payments import CheckoutSession, LineItem, PaymentGateway

logger = logging.getLogger(__name__)

CHECKOUT_TYPE = "nexar_plus_subscription"


@dataclass
class CollectionAccess:
    allowed: bool
    is_nexar_plus_game: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_subscription_active(account: Optional[Account]) -> bool:
    if not account:
        return False
    return bool(account.subscription.active)


def get_status(store: RecordStore, account_id: str) -> Subscription:
    return get_account(store, account_id).subscription


def create_checkout(store: RecordStore, gateway: PaymentGateway, account_id: str) -> CheckoutSession:
    account = get_account(store, account_id)
    if is_subscription_active(account):
        raise Conflict("Already subscribed to Nexar+")
    gateway.require_enabled()
    line_item = LineItem(
        name="Nexar+ Subscription",
        description="Monthly subscription: Game trials, discounts, exclusive content & free games",
        unit_amount=Decimal(str(NEXAR_PLUS_PRICE)),
        currency=WALLET_CURRENCY,
        recurring_interval="month",
    )
    return gateway.create_checkout_session(
        line_item,
        metadata={"accountId": account.id, "type": CHECKOUT_TYPE},
        success_url=f"{FRONTEND_BASE_URL}/nexar-plus?success=true&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{FRONTEND_BASE_URL}/nexar-plus?canceled=true",
        customer_email=account.email,
    )


def verify_checkout(
    store: RecordStore, gateway: PaymentGateway, account_id: str, session_id: str
) -> Subscription:
    if not session_id:
        raise ValidationError("Session ID is required")
    session = gateway.retrieve_session(session_id)
    if session.metadata.get("accountId") != account_id:
        raise Forbidden("Checkout session belongs to another account")
    if session.metadata.get("type") != CHECKOUT_TYPE:
        raise ValidationError("Not a subscription checkout")
    if not session.paid:
        raise ValidationError("Payment not completed")
    if not session.subscription_ref:
        raise ValidationError("Subscription not found")

    subscription = Subscription(
        active=True,
        renewal_date=session.renewal_date,
        customer_ref=session.customer_ref,
        subscription_ref=session.subscription_ref,
    )
    with account_locks.hold(account_key(account_id)):
        account = save_account(store, account_id, AccountPatch(subscription=subscription))
    logger.info("Nexar+ activated for %s until %s", account_id, session.renewal_date)
    return account.subscription


def cancel(store: RecordStore, gateway: PaymentGateway, account_id: str) -> Subscription:
    with account_locks.hold(account_key(account_id)):
        current = get_account(store, account_id).subscription
        if not current.active or not current.subscription_ref:
            raise Conflict("No active subscription to cancel")
        gateway.cancel_subscription(current.subscription_ref)
        cancelled = current.model_copy(update={"active": False})
        account = save_account(store, account_id, AccountPatch(subscription=cancelled))
    logger.info("Nexar+ cancelled for %s", account_id)
    return account.subscription


def check_collection_access(store: RecordStore, account_id: str, game_id: str) -> CollectionAccess:
    game = get_catalog_game(game_id)
    if game is None:
        raise NotFound("Game not found")
    if not game.in_nexar_plus_collection:
        return CollectionAccess(allowed=True, is_nexar_plus_game=False)
    if not is_subscription_active(get_account(store, account_id)):
        return CollectionAccess(
            allowed=False, is_nexar_plus_game=True, reason="Requires Nexar+ subscription"
        )
    return CollectionAccess(allowed=True, is_nexar_plus_game=True)
