from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import stripe

from ..core.config import STRIPE_API_VERSION, STRIPE_PUBLISHABLE_KEY, STRIPE_SECRET_KEY
from ..core.errors import ServiceUnavailable, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    name: str
    description: str
    unit_amount: Decimal
    currency: str
    recurring_interval: Optional[str] = None

    @property
    def unit_amount_minor(self) -> int:
        return int((self.unit_amount * 100).to_integral_value())


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


@dataclass
class SessionStatus:
    id: str
    paid: bool
    metadata: dict[str, str] = field(default_factory=dict)
    customer_ref: Optional[str] = None
    subscription_ref: Optional[str] = None
    renewal_date: Optional[datetime] = None


class PaymentGateway(ABC):
    """Hosted-checkout payment provider."""

    publishable_key = ""

    @abstractmethod
    def enabled(self) -> bool:
        ...

    @abstractmethod
    def create_checkout_session(
        self,
        line_item: LineItem,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> SessionStatus:
        ...

    @abstractmethod
    def cancel_subscription(self, subscription_ref: str) -> None:
        ...

    def require_enabled(self) -> None:
        if not self.enabled():
            raise ServiceUnavailable("Payments not configured")


def _value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _reference(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return _value(value, "id")


class StripePaymentGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str = STRIPE_SECRET_KEY,
        publishable_key: str = STRIPE_PUBLISHABLE_KEY,
        api_version: str = STRIPE_API_VERSION,
    ) -> None:
        self.secret_key = secret_key
        self.publishable_key = publishable_key
        self.api_version = api_version

    def enabled(self) -> bool:
        return bool(self.secret_key)

    def _options(self) -> dict[str, Any]:
        return {"api_key": self.secret_key, "stripe_version": self.api_version}

    def create_checkout_session(
        self,
        line_item: LineItem,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        self.require_enabled()
        price_data: dict[str, Any] = {
            "currency": line_item.currency,
            "product_data": {"name": line_item.name, "description": line_item.description},
            "unit_amount": line_item.unit_amount_minor,
        }
        if line_item.recurring_interval:
            price_data["recurring"] = {"interval": line_item.recurring_interval}
        params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "line_items": [{"price_data": price_data, "quantity": 1}],
            "mode": "subscription" if line_item.recurring_interval else "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(**params, **self._options())
        except stripe.StripeError as exc:
            logger.exception("Stripe checkout creation failed")
            raise UpstreamError("Failed to create checkout session") from exc
        return CheckoutSession(id=session.id, url=session.url)

    def retrieve_session(self, session_id: str) -> SessionStatus:
        self.require_enabled()
        try:
            session = stripe.checkout.Session.retrieve(
                session_id, expand=["subscription"], **self._options()
            )
        except stripe.StripeError as exc:
            logger.exception("Stripe session lookup failed for %s", session_id)
            raise UpstreamError("Failed to verify payment") from exc

        subscription = _value(session, "subscription")
        period_end = _value(subscription, "current_period_end")
        renewal_date = (
            datetime.fromtimestamp(int(period_end), tz=timezone.utc) if period_end else None
        )
        metadata = _value(session, "metadata") or {}
        return SessionStatus(
            id=session.id,
            paid=_value(session, "payment_status") == "paid",
            metadata={str(key): str(value) for key, value in dict(metadata).items()},
            customer_ref=_reference(_value(session, "customer")),
            subscription_ref=_reference(subscription),
            renewal_date=renewal_date,
        )

    def cancel_subscription(self, subscription_ref: str) -> None:
        self.require_enabled()
        try:
            stripe.Subscription.cancel(subscription_ref, **self._options())
        except stripe.StripeError as exc:
            logger.exception("Stripe cancellation failed for %s", subscription_ref)
            raise UpstreamError("Failed to cancel subscription") from exc


payment_gateway = StripePaymentGateway()
