from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import CheckoutOut, SessionIn, SubscriptionOut
from ..services import subscription
from ..services.payments import PaymentGateway
from ..store import RecordStore
from .deps import get_current_account, get_payment_gateway, get_store

router = APIRouter()


@router.get("/status", response_model=SubscriptionOut)
def status(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return subscription.get_status(store, current_account.id)


@router.post("/checkout", response_model=CheckoutOut)
def checkout(
    store: RecordStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_account: Account = Depends(get_current_account),
):
    session = subscription.create_checkout(store, gateway, current_account.id)
    return {"url": session.url, "session_id": session.id}


@router.post("/verify", response_model=SubscriptionOut)
def verify(
    payload: SessionIn,
    store: RecordStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_account: Account = Depends(get_current_account),
):
    return subscription.verify_checkout(store, gateway, current_account.id, payload.session_id)


@router.post("/cancel", response_model=SubscriptionOut)
def cancel(
    store: RecordStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_account: Account = Depends(get_current_account),
):
    return subscription.cancel(store, gateway, current_account.id)
