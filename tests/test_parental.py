from datetime import timedelta

import pytest

from nexar.core.clock import today
from nexar.core.errors import Conflict, Unauthorized, ValidationError
from nexar.entities import AccountPatch, DailyPlaytimeLog, ParentalControls, ParentalSettingsPatch
from nexar.services import accounts, parental


@pytest.fixture()
def child(store, make_account):
    account = make_account("kid")
    parental.enable(store, account.id, "2468")
    return account


@pytest.mark.parametrize("pin", ["12", "abcd", "123456789", ""])
def test_enable_rejects_malformed_pin(store, make_account, pin):
    account = make_account()
    with pytest.raises(ValidationError):
        parental.enable(store, account.id, pin)


def test_enable_stores_hashed_pin(store, child):
    controls = accounts.get_account(store, child.id).parental_controls
    assert controls.enabled
    assert controls.pin_hash and controls.pin_hash != "2468"
    with pytest.raises(Conflict):
        parental.enable(store, child.id, "1357")


def test_verify_pin(store, child, make_account):
    assert parental.verify_pin(store, child.id, "2468") is True
    assert parental.verify_pin(store, child.id, "0000") is False
    assert parental.verify_pin(store, make_account().id, "2468") is False


def test_settings_need_the_pin(store, child):
    with pytest.raises(Unauthorized):
        parental.update_settings(store, child.id, "0000", ParentalSettingsPatch(can_make_purchases=False))

    saved = parental.update_settings(
        store,
        child.id,
        "2468",
        ParentalSettingsPatch(restricted_ratings=["Mature", "T", "bogus", "M"], playtime_limit_minutes=60),
    )
    assert saved.restricted_ratings == ["M", "T"]
    assert saved.playtime_limit_minutes == 60
    assert saved.can_make_purchases is True


def test_settings_reject_null_flags(store, child):
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(playtime_limit_minutes=30))
    with pytest.raises(ValidationError):
        parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(can_make_purchases=None))
    with pytest.raises(ValidationError):
        parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(requires_parent_approval=None))

    cleared = parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(playtime_limit_minutes=None))
    assert cleared.playtime_limit_minutes is None
    assert cleared.can_make_purchases is True


def test_rating_gate_accepts_legacy_labels(store, child):
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(restricted_ratings=["Mature"]))

    for label in ("M", "Mature", "16+"):
        decision = parental.check_access(store, child.id, game_id="store-5", rating=label)
        assert decision.allowed is False
        assert decision.reason == "This game is rated M which is restricted"
    assert parental.check_access(store, child.id, rating="E").allowed is True
    assert parental.check_access(store, child.id).allowed is True


def test_disabled_controls_allow_everything():
    controls = ParentalControls(restricted_ratings=["M"], playtime_limit_minutes=0)
    assert parental.evaluate_access(controls, "M").allowed is True
    assert parental.purchase_decision(controls).allowed is True


def test_daily_limit(store, child):
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(playtime_limit_minutes=60))

    report = parental.log_playtime(store, child.id, 30)
    assert (report.minutes_played, report.limit, report.date) == (30, 60, today())
    assert parental.check_access(store, child.id).allowed is True

    parental.log_playtime(store, child.id, 30)
    decision = parental.check_access(store, child.id)
    assert decision.allowed is False
    assert decision.reason == "Daily playtime limit of 60 minutes reached"

    assert parental.override(store, child.id, "2468").allowed is True
    with pytest.raises(Unauthorized):
        parental.override(store, child.id, "1111")


def test_playtime_rolls_over_at_day_boundary(store, child):
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(playtime_limit_minutes=60))
    controls = accounts.get_account(store, child.id).parental_controls
    controls.daily_playtime_log = DailyPlaytimeLog(date=today() - timedelta(days=1), minutes_played=90)
    accounts.save_account(store, child.id, AccountPatch(parental_controls=controls))

    status = parental.get_status(store, child.id)
    assert (status.daily_playtime_log.date, status.daily_playtime_log.minutes_played) == (today(), 0)
    assert parental.check_access(store, child.id).allowed is True

    report = parental.log_playtime(store, child.id, 15)
    assert report.minutes_played == 15
    stored = accounts.get_account(store, child.id).parental_controls.daily_playtime_log
    assert (stored.date, stored.minutes_played) == (today(), 15)


def test_log_playtime_rejects_negative(store, child):
    with pytest.raises(ValidationError):
        parental.log_playtime(store, child.id, -5)


def test_purchase_rules(store, child):
    assert parental.check_purchase(store, child.id).to_dict() == {
        "allowed": True,
        "requires_approval": False,
        "reason": None,
    }
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(requires_parent_approval=True))
    assert parental.check_purchase(store, child.id).requires_approval is True

    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(can_make_purchases=False))
    decision = parental.check_purchase(store, child.id)
    assert decision.allowed is False
    assert decision.reason == "Purchases are disabled by parental controls"


def test_disable_resets_to_defaults(store, child):
    parental.update_settings(store, child.id, "2468", ParentalSettingsPatch(restricted_ratings=["M"]))
    with pytest.raises(Unauthorized):
        parental.disable(store, child.id, "9999")

    controls = parental.disable(store, child.id, "2468")
    assert controls.enabled is False
    assert controls.pin_hash == ""
    assert controls.restricted_ratings == []
    with pytest.raises(ValidationError):
        parental.disable(store, child.id, "2468")
