from typing import List

from fastapi import APIRouter, Depends

from ..core.catalog import GAME_CATALOG, get_catalog_game
from ..core.errors import NotFound
from ..entities import Account
from ..schemas import CatalogGameOut, CollectionAccessOut, PriceOut, TrialOut, TrialUpdateIn
from ..services import subscription, trials, wallet
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("/catalog", response_model=List[CatalogGameOut])
def list_catalog():
    return [game.to_dict() for game in GAME_CATALOG.values()]


@router.post("/trial", response_model=TrialOut)
def update_trial(
    payload: TrialUpdateIn,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return trials.record_trial_minutes(store, current_account.id, payload.game_id, payload.minutes_played).to_dict()


@router.get("/{game_id}", response_model=CatalogGameOut)
def get_game(game_id: str):
    game = get_catalog_game(game_id)
    if game is None:
        raise NotFound("Game not found")
    return game.to_dict()


@router.get("/{game_id}/price", response_model=PriceOut)
def get_price(
    game_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    quote = wallet.get_catalog_price(store, current_account.id, game_id)
    return {
        "game_id": quote.game_id,
        "base_price": quote.base_price,
        "discounted_price": quote.final_price,
        "discount_percent": quote.discount_percent,
        "has_nexar_plus_discount": quote.has_discount,
    }


@router.get("/{game_id}/trial", response_model=TrialOut)
def check_trial(
    game_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return trials.check_trial(store, current_account.id, game_id).to_dict()


@router.get("/{game_id}/nexar-plus", response_model=CollectionAccessOut)
def check_collection_access(
    game_id: str,
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return subscription.check_collection_access(store, current_account.id, game_id).to_dict()
