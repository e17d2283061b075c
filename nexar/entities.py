"""Typed shapes of the documents kept in the record store.

Every entity round-trips through ``to_record`` / ``model_validate``. Partial
updates go through the ``*Patch`` models, which reject unknown fields and only
carry the fields a caller actually set.
"""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core.clock import today, utcnow
from .core.ratings import normalize_ratings
from .models import generate_id

Role = Literal["user", "developer", "admin"]
FriendStatus = Literal["pending", "accepted", "rejected"]
TransactionType = Literal["deposit", "purchase", "refund"]
ApplicationStatus = Literal["pending", "approved", "rejected"]
ListingStatus = Literal["draft", "pending", "approved", "rejected"]


class Entity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Patch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, Any]:
        """JSON-ready values of the fields that were explicitly set."""
        dumped = self.model_dump(mode="json")
        return {name: dumped[name] for name in self.model_fields_set}


class DailyPlaytimeLog(Entity):
    date: dt.date = Field(default_factory=today)
    minutes_played: int = Field(default=0, ge=0)


class ParentalControls(Entity):
    enabled: bool = False
    pin_hash: str = ""
    playtime_limit_minutes: Optional[int] = Field(default=None, ge=0)
    can_make_purchases: bool = True
    restricted_ratings: list[str] = Field(default_factory=list)
    requires_parent_approval: bool = False
    daily_playtime_log: DailyPlaytimeLog = Field(default_factory=DailyPlaytimeLog)

    @field_validator("restricted_ratings", mode="before")
    @classmethod
    def canonical_ratings(cls, value):
        return normalize_ratings(value)

    def rolled_over(self, on: Optional[date] = None) -> "ParentalControls":
        """Copy whose playtime log belongs to ``on`` (today by default)."""
        current = on or today()
        if self.daily_playtime_log.date == current:
            return self.model_copy(deep=True)
        return self.model_copy(
            update={"daily_playtime_log": DailyPlaytimeLog(date=current, minutes_played=0)},
            deep=True,
        )


class ParentalSettingsPatch(Patch):
    playtime_limit_minutes: Optional[int] = Field(default=None, ge=0)
    can_make_purchases: Optional[bool] = None
    restricted_ratings: Optional[list[str]] = None
    requires_parent_approval: Optional[bool] = None

    @field_validator("restricted_ratings", mode="before")
    @classmethod
    def canonical_ratings(cls, value):
        if value is None:
            return None
        return normalize_ratings(value)


class Subscription(Entity):
    active: bool = False
    renewal_date: Optional[datetime] = None
    customer_ref: Optional[str] = None
    subscription_ref: Optional[str] = None


class TrialUsage(Entity):
    minutes_played: int = Field(default=0, ge=0)
    expired: bool = False


class DeveloperProfile(Entity):
    studio_name: str
    contact_email: str
    website: str = ""
    description: str
    status: ApplicationStatus = "pending"
    applied_at: datetime = Field(default_factory=utcnow)


class Account(Entity):
    id: str = Field(default_factory=generate_id)
    email: str
    username: str
    password_hash: str
    avatar_url: str = ""
    bio: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    verified: bool = False
    verification_token: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expires_at: Optional[datetime] = None
    wallet_balance: Decimal = Field(default=Decimal("0"), ge=0)
    owned_games: list[str] = Field(default_factory=list)
    subscription: Subscription = Field(default_factory=Subscription)
    parental_controls: ParentalControls = Field(default_factory=ParentalControls)
    trial_usage: dict[str, TrialUsage] = Field(default_factory=dict)
    role: Role = "user"
    developer_profile: Optional[DeveloperProfile] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_approved_developer(self) -> bool:
        return (
            self.role == "developer"
            and self.developer_profile is not None
            and self.developer_profile.status == "approved"
        )

    def owns(self, game_id: str) -> bool:
        return game_id in self.owned_games


class AccountPatch(Patch):
    email: Optional[str] = None
    username: Optional[str] = None
    password_hash: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    verified: Optional[bool] = None
    verification_token: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expires_at: Optional[datetime] = None
    wallet_balance: Optional[Decimal] = Field(default=None, ge=0)
    owned_games: Optional[list[str]] = None
    subscription: Optional[Subscription] = None
    parental_controls: Optional[ParentalControls] = None
    trial_usage: Optional[dict[str, TrialUsage]] = None
    role: Optional[Role] = None
    developer_profile: Optional[DeveloperProfile] = None


class FriendEdge(Entity):
    id: str = Field(default_factory=generate_id)
    sender_id: str
    receiver_id: str
    status: FriendStatus = "pending"
    created_at: datetime = Field(default_factory=utcnow)

    def other_party(self, account_id: str) -> str:
        return self.receiver_id if self.sender_id == account_id else self.sender_id


class Message(Entity):
    id: str = Field(default_factory=generate_id)
    sender_id: str
    recipient_id: str
    text: str
    sent_at: datetime = Field(default_factory=utcnow)


class AchievementUnlock(Entity):
    id: str = Field(default_factory=generate_id)
    account_id: str
    achievement_id: str
    unlocked_at: datetime = Field(default_factory=utcnow)


class CloudSave(Entity):
    id: str = Field(default_factory=generate_id)
    owner_id: str
    game_id: str = "default"
    filename: str
    data: str
    uploaded_at: datetime = Field(default_factory=utcnow)


class CloudSavePatch(Patch):
    filename: Optional[str] = None
    data: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class WalletTransaction(Entity):
    id: str = Field(default_factory=generate_id)
    account_id: str
    amount: Decimal
    type: TransactionType
    description: str
    reference: Optional[str] = None
    game_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class DeveloperGame(Entity):
    id: str = Field(default_factory=generate_id)
    developer_id: str
    title: str
    description: str
    genre: str
    tags: list[str] = Field(default_factory=list)
    price: Decimal = Field(ge=0)
    cover_image: str = ""
    status: ListingStatus = "draft"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DeveloperGamePatch(Patch):
    title: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    tags: Optional[list[str]] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    cover_image: Optional[str] = None
    status: Optional[ListingStatus] = None
    updated_at: Optional[datetime] = None
