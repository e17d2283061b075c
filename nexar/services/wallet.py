"""Wallet balance, game purchases and the append-only transaction ledger.

Balance changes are read-modify-write sequences on the account document, so
each runs under the account's lock. The ledger row is appended after the
balance write; if the append fails the balance write is undone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from ..core.catalog import CatalogGame, get_catalog_game
from ..core.config import FRONTEND_BASE_URL, WALLET_CURRENCY, WALLET_MAX_DEPOSIT, WALLET_MIN_DEPOSIT
from ..core.errors import Conflict, Forbidden, InsufficientFunds, NotFound, ValidationError
from ..core.locks import account_key, account_locks
from ..entities import Account, AccountPatch, WalletTransaction
from ..store import Collection, RecordStore, where
from .accounts import get_account, save_account
from .parental import purchase_decision
from .payments import CheckoutSession, LineItem, PaymentGateway
from .subscription import is_subscription_active

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DEPOSIT_TYPE = "wallet_deposit"
LEDGER_REFERENCE_KEY = ("type", "reference")


@dataclass
class PriceQuote:
    game_id: str
    base_price: Decimal
    final_price: Decimal
    discount_percent: int = 0

    @property
    def has_discount(self) -> bool:
        return self.discount_percent > 0


@dataclass
class DepositResult:
    balance: Decimal
    transaction: Optional[WalletTransaction]
    already_processed: bool = False


@dataclass
class PurchaseResult:
    balance: Decimal
    owned_games: list[str]
    transaction: WalletTransaction
    quote: PriceQuote


@dataclass
class WalletView:
    balance: Decimal
    transactions: list[WalletTransaction] = field(default_factory=list)
    owned_games: list[str] = field(default_factory=list)


def to_money(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValidationError("Invalid amount")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def discounted_price(price: Decimal, discount_percent: int) -> Decimal:
    return (price * (Decimal(100) - Decimal(discount_percent)) / Decimal(100)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def quote_price(game: CatalogGame, account: Account) -> PriceQuote:
    if is_subscription_active(account) and game.nexar_plus_discount:
        return PriceQuote(
            game_id=game.id,
            base_price=game.price,
            final_price=discounted_price(game.price, game.nexar_plus_discount),
            discount_percent=game.nexar_plus_discount,
        )
    return PriceQuote(game_id=game.id, base_price=game.price, final_price=game.price)


def _require_game(game_id: str) -> CatalogGame:
    game = get_catalog_game(game_id)
    if game is None:
        raise NotFound("Game not found in catalog")
    return game


def get_catalog_price(store: RecordStore, account_id: str, game_id: str) -> PriceQuote:
    game = _require_game(game_id)
    return quote_price(game, get_account(store, account_id))


def find_deposit(store: RecordStore, reference: str) -> Optional[WalletTransaction]:
    record = store.find_one(Collection.WALLET_TRANSACTIONS, where(type="deposit", reference=reference))
    return WalletTransaction.model_validate(record) if record else None


def _append_ledger(
    store: RecordStore,
    account_id: str,
    rollback: AccountPatch,
    transaction: WalletTransaction,
) -> WalletTransaction:
    try:
        store.insert_one(
            Collection.WALLET_TRANSACTIONS,
            transaction.to_record(),
            unique=[LEDGER_REFERENCE_KEY] if transaction.reference else (),
        )
    except Exception:
        logger.exception("Ledger append failed for %s; reverting balance", account_id)
        save_account(store, account_id, rollback)
        raise
    return transaction


def add_funds(store: RecordStore, account_id: str, amount: Any, reference: str) -> DepositResult:
    """Credit ``amount`` once per external payment ``reference``."""
    credit = to_money(amount)
    if credit <= 0:
        raise ValidationError("Invalid amount")
    if not reference:
        raise ValidationError("Payment reference is required")

    with account_locks.hold(account_key(account_id)):
        if find_deposit(store, reference) is not None:
            raise Conflict("Payment already processed")
        account = get_account(store, account_id)
        previous = account.wallet_balance
        updated = save_account(store, account_id, AccountPatch(wallet_balance=previous + credit))
        transaction = _append_ledger(
            store,
            account_id,
            AccountPatch(wallet_balance=previous),
            WalletTransaction(
                account_id=account_id,
                amount=credit,
                type="deposit",
                description=f"Added £{credit} to wallet",
                reference=reference,
            ),
        )
    logger.info("Credited %s to %s (ref %s)", credit, account_id, reference)
    return DepositResult(balance=updated.wallet_balance, transaction=transaction)


def purchase_game(store: RecordStore, account_id: str, game_id: str) -> PurchaseResult:
    game = _require_game(game_id)
    with account_locks.hold(account_key(account_id)):
        account = get_account(store, account_id)
        if account.owns(game.id):
            raise Conflict("You already own this game")
        decision = purchase_decision(account.parental_controls)
        if not decision.allowed:
            raise Forbidden(decision.reason or "Purchases are disabled by parental controls")

        quote = quote_price(game, account)
        if account.wallet_balance < quote.final_price:
            raise InsufficientFunds(
                "Insufficient wallet balance",
                extra={"balance": str(account.wallet_balance), "price": str(quote.final_price)},
            )

        owned = [*account.owned_games, game.id]
        updated = save_account(
            store,
            account_id,
            AccountPatch(wallet_balance=account.wallet_balance - quote.final_price, owned_games=owned),
        )
        discount_text = f" ({quote.discount_percent}% Nexar+ discount)" if quote.has_discount else ""
        transaction = _append_ledger(
            store,
            account_id,
            AccountPatch(wallet_balance=account.wallet_balance, owned_games=account.owned_games),
            WalletTransaction(
                account_id=account_id,
                amount=-quote.final_price,
                type="purchase",
                description=f"Purchased {game.name}{discount_text}",
                game_id=game.id,
            ),
        )
    logger.info("Account %s purchased %s for %s", account_id, game.id, quote.final_price)
    return PurchaseResult(
        balance=updated.wallet_balance,
        owned_games=updated.owned_games,
        transaction=transaction,
        quote=quote,
    )


def get_wallet(store: RecordStore, account_id: str) -> WalletView:
    account = get_account(store, account_id)
    rows = store.find_many(Collection.WALLET_TRANSACTIONS, where(account_id=account_id))
    transactions = sorted(
        (WalletTransaction.model_validate(row) for row in rows),
        key=lambda item: item.created_at,
        reverse=True,
    )
    return WalletView(
        balance=account.wallet_balance,
        transactions=transactions,
        owned_games=list(account.owned_games),
    )


def validate_deposit_amount(amount: Any) -> Decimal:
    value = to_money(amount)
    if value < WALLET_MIN_DEPOSIT or value > WALLET_MAX_DEPOSIT:
        raise ValidationError(f"Amount must be between £{WALLET_MIN_DEPOSIT} and £{WALLET_MAX_DEPOSIT}")
    return value


def create_deposit_checkout(
    store: RecordStore, gateway: PaymentGateway, account_id: str, amount: Any
) -> CheckoutSession:
    value = validate_deposit_amount(amount)
    account = get_account(store, account_id)
    gateway.require_enabled()
    return gateway.create_checkout_session(
        LineItem(
            name="NexarOS Wallet Funds",
            description=f"Add £{value} to your NexarOS wallet",
            unit_amount=value,
            currency=WALLET_CURRENCY,
        ),
        metadata={"accountId": account.id, "type": DEPOSIT_TYPE, "amount": str(value)},
        success_url=f"{FRONTEND_BASE_URL}/wallet?success=true&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{FRONTEND_BASE_URL}/wallet?canceled=true",
    )


def _already_processed(store: RecordStore, account_id: str, reference: str) -> DepositResult:
    return DepositResult(
        balance=get_account(store, account_id).wallet_balance,
        transaction=find_deposit(store, reference),
        already_processed=True,
    )


def verify_deposit(
    store: RecordStore, gateway: PaymentGateway, account_id: str, session_id: str
) -> DepositResult:
    """Credit a completed deposit checkout; safe to call again after a timeout."""
    if not session_id:
        raise ValidationError("Session ID is required")
    existing = find_deposit(store, session_id)
    if existing is not None:
        if existing.account_id != account_id:
            raise Forbidden("Checkout session belongs to another account")
        return _already_processed(store, account_id, session_id)

    session = gateway.retrieve_session(session_id)
    if not session.paid:
        raise ValidationError("Payment not completed")
    if session.metadata.get("accountId") != account_id:
        raise Forbidden("Checkout session belongs to another account")
    if session.metadata.get("type") != DEPOSIT_TYPE:
        raise ValidationError("Not a wallet deposit")
    amount = to_money(session.metadata.get("amount") or "0")
    if amount <= 0:
        raise ValidationError("Invalid amount")

    try:
        return add_funds(store, account_id, amount, session_id)
    except Conflict:
        return _already_processed(store, account_id, session_id)
