from typing import List

from fastapi import APIRouter, Depends

from ..core.catalog import ACHIEVEMENTS
from ..entities import Account
from ..schemas import AccountAchievementOut, AchievementOut
from ..services import achievements
from ..store import RecordStore
from .deps import get_current_account, get_store

router = APIRouter()


@router.get("", response_model=List[AchievementOut])
def list_achievements():
    return [definition.to_dict() for definition in ACHIEVEMENTS.values()]


@router.get("/me", response_model=List[AccountAchievementOut])
def my_achievements(
    store: RecordStore = Depends(get_store),
    current_account: Account = Depends(get_current_account),
):
    return achievements.list_account_achievements(store, current_account.id)
