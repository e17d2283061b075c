from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from nexar.core.catalog import GAME_CATALOG
from nexar.core.errors import (
    Conflict,
    Forbidden,
    InsufficientFunds,
    NexarError,
    NotFound,
    ServiceUnavailable,
    ValidationError,
)
from nexar.entities import AccountPatch, ParentalSettingsPatch, Subscription
from nexar.services import accounts, parental, wallet


def _subscribe(store, account_id):
    accounts.save_account(store, account_id, AccountPatch(subscription=Subscription(active=True)))


def test_discounted_price_rounds_half_up():
    assert wallet.discounted_price(Decimal("49.99"), 20) == Decimal("39.99")
    assert wallet.discounted_price(Decimal("29.99"), 25) == Decimal("22.49")
    assert wallet.discounted_price(Decimal("10.00"), 0) == Decimal("10.00")


def test_add_funds_is_once_per_reference(store, make_account):
    account = make_account()
    result = wallet.add_funds(store, account.id, "12.5", "ref-1")
    assert result.balance == Decimal("12.50")
    assert result.transaction.type == "deposit"

    with pytest.raises(Conflict):
        wallet.add_funds(store, account.id, 12.5, "ref-1")
    assert accounts.get_account(store, account.id).wallet_balance == Decimal("12.50")


@pytest.mark.parametrize("amount", [0, -5, "abc", "NaN"])
def test_add_funds_rejects_bad_amounts(store, make_account, amount):
    account = make_account()
    with pytest.raises(ValidationError):
        wallet.add_funds(store, account.id, amount, "ref-bad")


def test_purchase_debits_and_records(store, make_account):
    account = make_account()
    wallet.add_funds(store, account.id, 60, "ref-1")

    result = wallet.purchase_game(store, account.id, "store-1")
    assert result.balance == Decimal("10.01")
    assert result.owned_games == ["store-1"]
    assert result.transaction.amount == Decimal("-49.99")
    assert result.transaction.description == "Purchased Galactic Frontier"

    view = wallet.get_wallet(store, account.id)
    assert [t.type for t in view.transactions] == ["purchase", "deposit"]

    with pytest.raises(Conflict):
        wallet.purchase_game(store, account.id, "store-1")
    with pytest.raises(NotFound):
        wallet.purchase_game(store, account.id, "store-404")


def test_purchase_with_insufficient_funds(store, make_account):
    account = make_account()
    wallet.add_funds(store, account.id, 10, "ref-1")
    with pytest.raises(InsufficientFunds) as err:
        wallet.purchase_game(store, account.id, "store-1")
    assert err.value.extra["price"] == "49.99"
    refreshed = accounts.get_account(store, account.id)
    assert refreshed.wallet_balance == Decimal("10.00")
    assert refreshed.owned_games == []


def test_subscriber_discount(store, make_account):
    account = make_account()
    _subscribe(store, account.id)
    wallet.add_funds(store, account.id, 50, "ref-1")

    quote = wallet.get_catalog_price(store, account.id, "store-1")
    assert (quote.final_price, quote.discount_percent) == (Decimal("39.99"), 20)

    result = wallet.purchase_game(store, account.id, "store-1")
    assert result.balance == Decimal("10.01")
    assert result.transaction.description == "Purchased Galactic Frontier (20% Nexar+ discount)"

    no_discount = wallet.get_catalog_price(store, account.id, "store-6")
    assert no_discount.final_price == Decimal("24.99")
    assert not no_discount.has_discount


def test_parental_controls_can_block_purchases(store, make_account):
    account = make_account()
    wallet.add_funds(store, account.id, 100, "ref-1")
    parental.enable(store, account.id, "1234")
    parental.update_settings(store, account.id, "1234", ParentalSettingsPatch(can_make_purchases=False))

    with pytest.raises(Forbidden):
        wallet.purchase_game(store, account.id, "store-6")
    assert accounts.get_account(store, account.id).wallet_balance == Decimal("100.00")


def test_concurrent_purchases_never_overdraw(store, make_account):
    account = make_account()
    wallet.add_funds(store, account.id, 50, "ref-1")

    def attempt(game_id):
        try:
            wallet.purchase_game(store, account.id, game_id)
            return game_id
        except NexarError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        bought = [g for g in pool.map(attempt, list(GAME_CATALOG)) if g]

    final = accounts.get_account(store, account.id)
    spent = sum((GAME_CATALOG[g].price for g in bought), Decimal("0"))
    assert final.wallet_balance >= 0
    assert final.wallet_balance == Decimal("50.00") - spent
    assert sorted(final.owned_games) == sorted(bought)


def test_concurrent_purchases_of_one_game(store, make_account):
    account = make_account()
    wallet.add_funds(store, account.id, 100, "ref-1")

    def attempt(_):
        try:
            wallet.purchase_game(store, account.id, "store-6")
            return True
        except Conflict:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(8)))

    assert results.count(True) == 1
    assert accounts.get_account(store, account.id).wallet_balance == Decimal("75.01")


def test_deposit_checkout_bounds(store, make_account, gateway):
    account = make_account()
    with pytest.raises(ValidationError):
        wallet.create_deposit_checkout(store, gateway, account.id, 4)
    with pytest.raises(ValidationError):
        wallet.create_deposit_checkout(store, gateway, account.id, 101)

    session = wallet.create_deposit_checkout(store, gateway, account.id, 20)
    created = gateway.created[-1]
    assert created["id"] == session.id
    assert created["metadata"] == {"accountId": account.id, "type": "wallet_deposit", "amount": "20.00"}
    assert created["line_item"].unit_amount_minor == 2000


def test_deposit_checkout_requires_configured_gateway(store, make_account, offline_gateway):
    account = make_account()
    with pytest.raises(ServiceUnavailable):
        wallet.create_deposit_checkout(store, offline_gateway, account.id, 20)


def test_verify_deposit_is_retry_safe(store, make_account, gateway):
    account = make_account()
    session = wallet.create_deposit_checkout(store, gateway, account.id, 20)

    with pytest.raises(ValidationError):
        wallet.verify_deposit(store, gateway, account.id, session.id)

    gateway.complete(session.id)
    first = wallet.verify_deposit(store, gateway, account.id, session.id)
    assert (first.balance, first.already_processed) == (Decimal("20.00"), False)

    again = wallet.verify_deposit(store, gateway, account.id, session.id)
    assert (again.balance, again.already_processed) == (Decimal("20.00"), True)


def test_verify_deposit_of_another_account(store, make_account, gateway):
    owner, other = make_account(), make_account()
    session = wallet.create_deposit_checkout(store, gateway, owner.id, 20)
    gateway.complete(session.id)

    with pytest.raises(Forbidden):
        wallet.verify_deposit(store, gateway, other.id, session.id)
    wallet.verify_deposit(store, gateway, owner.id, session.id)
    with pytest.raises(Forbidden):
        wallet.verify_deposit(store, gateway, other.id, session.id)


def test_concurrent_verification_credits_once(store, make_account, gateway):
    account = make_account()
    session = wallet.create_deposit_checkout(store, gateway, account.id, 20)
    gateway.complete(session.id)

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(
            pool.map(lambda _: wallet.verify_deposit(store, gateway, account.id, session.id), range(6))
        )

    assert sum(1 for r in results if not r.already_processed) == 1
    assert accounts.get_account(store, account.id).wallet_balance == Decimal("20.00")
