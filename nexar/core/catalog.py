from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    icon: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
        }


@dataclass(frozen=True)
class CatalogGame:
    id: str
    name: str
    price: Decimal
    trial_duration_minutes: Optional[int] = None
    nexar_plus_discount: Optional[int] = None
    in_nexar_plus_collection: bool = False

    @property
    def has_trial(self) -> bool:
        return bool(self.trial_duration_minutes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "trial_enabled": self.has_trial,
            "trial_duration_minutes": self.trial_duration_minutes,
            "nexar_plus_discount": self.nexar_plus_discount,
            "in_nexar_plus_collection": self.in_nexar_plus_collection,
        }


FIRST_LOGIN = "first_login"
PROFILE_COMPLETE = "profile_complete"
FIRST_FRIEND = "first_friend"
MESSENGER = "messenger"
SOCIAL_BUTTERFLY = "social_butterfly"
CHAT_MASTER = "chat_master"
DEVELOPER = "developer"

_ACHIEVEMENTS = (
    AchievementDefinition(FIRST_LOGIN, "First Login", "Log in for the first time", "trophy"),
    AchievementDefinition(
        PROFILE_COMPLETE, "Profile Complete", "Complete your profile with avatar and bio", "user"
    ),
    AchievementDefinition(FIRST_FRIEND, "First Friend", "Add your first friend", "users"),
    AchievementDefinition(MESSENGER, "Messenger", "Send your first message", "message-circle"),
    AchievementDefinition(SOCIAL_BUTTERFLY, "Social Butterfly", "Have 5 friends", "heart"),
    AchievementDefinition(CHAT_MASTER, "Chat Master", "Send 50 messages", "messages-square"),
    AchievementDefinition(
        DEVELOPER, "Developer", "Have a game approved for the Nexar Store", "code"
    ),
)

ACHIEVEMENTS: Mapping[str, AchievementDefinition] = MappingProxyType(
    {definition.id: definition for definition in _ACHIEVEMENTS}
)

_GAMES = (
    CatalogGame("store-1", "Galactic Frontier", Decimal("49.99"), 120, 20),
    CatalogGame("store-2", "Dragon's Legacy", Decimal("59.99"), 120, 15),
    CatalogGame("store-3", "Urban Legends", Decimal("29.99"), None, 25),
    CatalogGame("store-4", "Quantum Break", Decimal("39.99"), 120, None),
    CatalogGame("store-5", "Warzone Elite", Decimal("69.99"), None, 10),
    CatalogGame("store-6", "Speed Kings", Decimal("24.99")),
    CatalogGame("store-7", "Empire Builder", Decimal("34.99"), in_nexar_plus_collection=True),
    CatalogGame("store-8", "Championship 2025", Decimal("44.99"), in_nexar_plus_collection=True),
)

GAME_CATALOG: Mapping[str, CatalogGame] = MappingProxyType({game.id: game for game in _GAMES})


def get_achievement(achievement_id: str) -> Optional[AchievementDefinition]:
    return ACHIEVEMENTS.get(achievement_id)


def get_catalog_game(game_id: str) -> Optional[CatalogGame]:
    return GAME_CATALOG.get(str(game_id or "").strip())
