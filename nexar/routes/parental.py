from fastapi import APIRouter, Depends

from ..entities import Account, ParentalSettingsPatch
from ..schemas import (
    AccessCheckIn,
    AccessOut,
    ParentalSettingsIn,
    ParentalStatusOut,
    PinIn,
    PinVerifyOut,
    PlaytimeIn,
    PlaytimeOut,
    PurchaseCheckOut,
)
from ..services import parental
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("/status", response_model=ParentalStatusOut)
def status(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.get_status(store, current_account.id)


@router.post("/enable", response_model=ParentalStatusOut)
def enable(
    payload: PinIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.enable(store, current_account.id, payload.pin)


@router.post("/disable", response_model=ParentalStatusOut)
def disable(
    payload: PinIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.disable(store, current_account.id, payload.pin)


@router.post("/verify-pin", response_model=PinVerifyOut)
def verify_pin(
    payload: PinIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return {"valid": parental.verify_pin(store, current_account.id, payload.pin)}


@router.put("/settings", response_model=ParentalStatusOut)
def update_settings(
    payload: ParentalSettingsIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    settings = ParentalSettingsPatch(**payload.model_dump(exclude_unset=True, exclude={"pin"}))
    return parental.update_settings(store, current_account.id, payload.pin, settings)


@router.post("/check-access", response_model=AccessOut)
def check_access(
    payload: AccessCheckIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.check_access(store, current_account.id, payload.game_id, payload.rating).to_dict()


@router.post("/override", response_model=AccessOut)
def override(
    payload: PinIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.override(store, current_account.id, payload.pin).to_dict()


@router.post("/playtime", response_model=PlaytimeOut)
def log_playtime(
    payload: PlaytimeIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    report = parental.log_playtime(store, current_account.id, payload.minutes)
    return {"date": report.date, "minutes_played": report.minutes_played, "limit": report.limit}


@router.get("/check-purchase", response_model=PurchaseCheckOut)
def check_purchase(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return parental.check_purchase(store, current_account.id).to_dict()
