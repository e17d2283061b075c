from fastapi import APIRouter, Depends

from ..entities import Account
from ..schemas import (
    CheckoutOut,
    DepositCheckoutIn,
    DepositVerifyOut,
    GameIdIn,
    PurchaseOut,
    SessionIn,
    StripeKeyOut,
    WalletOut,
)
from ..services import wallet
from ..services.payments import PaymentGateway
from ..store import RecordStore
from .deps import get_current_account, get_payment_gateway, get_store

router = APIRouter()


@router.get("", response_model=WalletOut)
def get_wallet(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    view = wallet.get_wallet(store, current_account.id)
    return {
        "balance": view.balance,
        "transactions": [item.model_dump() for item in view.transactions],
        "owned_games": view.owned_games,
    }


@router.get("/stripe-key", response_model=StripeKeyOut)
def stripe_key(gateway: PaymentGateway = Depends(get_payment_gateway)):
    gateway.require_enabled()
    return {"publishable_key": gateway.publishable_key}


@router.post("/deposit/checkout", response_model=CheckoutOut)
def deposit_checkout(
    payload: DepositCheckoutIn,
    store: RecordStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_account: Account = Depends(get_current_account),
):
    session = wallet.create_deposit_checkout(store, gateway, current_account.id, payload.amount)
    return {"url": session.url, "session_id": session.id}


@router.post("/deposit/verify", response_model=DepositVerifyOut)
def deposit_verify(
    payload: SessionIn,
    store: RecordStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_account: Account = Depends(get_current_account),
):
    result = wallet.verify_deposit(store, gateway, current_account.id, payload.session_id)
    if result.already_processed:
        message = "Payment already processed"
    else:
        message = f"Added £{result.transaction.amount} to wallet"
    return {"message": message, "balance": result.balance, "already_processed": result.already_processed}


@router.post("/purchase", response_model=PurchaseOut)
def purchase(
    payload: GameIdIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    result = wallet.purchase_game(store, current_account.id, payload.game_id)
    return {
        "message": "Game purchased successfully",
        "balance": result.balance,
        "owned_games": result.owned_games,
        "discount_applied": result.quote.discount_percent,
        "original_price": result.quote.base_price,
        "final_price": result.quote.final_price,
    }
