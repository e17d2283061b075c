from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.errors import NotFound, Unauthorized
from ..core.security import verify_token
from ..entities import Account
from ..services.accounts import get_account
from ..services.notifications import EmailService, email_service
from ..services.payments import PaymentGateway, payment_gateway
from ..store import RecordStore
from ..store import get_store as _default_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_store() -> RecordStore:
    return _default_store()


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway


def get_email_service() -> EmailService:
    return email_service


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: RecordStore = Depends(get_store),
) -> Account:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authenticated")
    payload = verify_token(credentials.credentials)
    if payload is None:
        raise Unauthorized("Invalid token")
    try:
        return get_account(store, payload["sub"])
    except NotFound as exc:
        raise Unauthorized("Invalid token") from exc
