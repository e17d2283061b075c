from typing import List

from fastapi import APIRouter, Depends

from ..schemas import StoreListingOut
from ..services import developer
from ..store import RecordStore
from .deps import get_store

router = APIRouter()


@router.get("/games", response_model=List[StoreListingOut])
def list_store_games(store: RecordStore = Depends(get_store)):
    return [
        {**listing.model_dump(), "developer_name": name}
        for listing, name in developer.list_store_listings(store)
    ]
