from typing import List, Optional
import datetime as dt
from datetime import datetime
from decimal import Decimal
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator


class MessageOut(BaseModel):
    message: str


class AchievementOut(BaseModel):
    id: str
    name: str
    description: str
    icon: str

    class Config:
        from_attributes = True


class AccountAchievementOut(AchievementOut):
    unlocked: bool
    unlocked_at: Optional[datetime] = None


class RegisterIn(BaseModel):
    email: EmailStr
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def username_shape(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 3:
            raise ValueError("must be at least 3 characters")
        if len(cleaned) > 32:
            raise ValueError("must be at most 32 characters")
        if not cleaned.replace("_", "").isalnum():
            raise ValueError("must be letters, digits or underscores")
        return cleaned


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class EmailIn(BaseModel):
    email: EmailStr


class PasswordResetIn(BaseModel):
    token: str
    new_password: str


class SubscriptionOut(BaseModel):
    active: bool
    renewal_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeveloperProfileOut(BaseModel):
    studio_name: str
    contact_email: str
    website: str = ""
    description: str
    status: str
    applied_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AccountOut(BaseModel):
    id: str
    email: EmailStr
    username: str
    avatar_url: str = ""
    bio: str = ""
    created_at: Optional[datetime] = None
    verified: bool
    wallet_balance: float
    owned_games: List[str] = []
    role: str
    subscription: SubscriptionOut
    developer_profile: Optional[DeveloperProfileOut] = None

    class Config:
        from_attributes = True


class PublicAccountOut(BaseModel):
    id: str
    username: str
    avatar_url: str = ""
    bio: str = ""

    class Config:
        from_attributes = True


class RegisterOut(BaseModel):
    message: str
    requires_verification: bool = True
    unlocked_achievements: List[AchievementOut] = []


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AccountOut


class ProfileUpdateIn(BaseModel):
    avatar_url: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    username: Optional[str] = None


class AvatarIn(BaseModel):
    avatar_url: str


class ProfileOut(AccountOut):
    unlocked_achievements: List[AchievementOut] = []


class FriendRequestIn(BaseModel):
    username: str


class FriendRequestOut(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    status: str
    created_at: datetime
    sender: Optional[PublicAccountOut] = None
    receiver: Optional[PublicAccountOut] = None

    class Config:
        from_attributes = True


class FriendAcceptOut(BaseModel):
    message: str
    unlocked_achievements: List[AchievementOut] = []


class ChatMessageIn(BaseModel):
    recipient_id: str
    text: str = Field(min_length=1, max_length=2000)


class ChatMessageOut(BaseModel):
    id: str
    sender_id: str
    recipient_id: str
    text: str
    sent_at: datetime

    class Config:
        from_attributes = True


class ChatMessageSentOut(ChatMessageOut):
    unlocked_achievements: List[AchievementOut] = []


class ConversationOut(BaseModel):
    partner: PublicAccountOut
    last_message: ChatMessageOut
    unread_count: int = 0


class CloudSaveIn(BaseModel):
    filename: str
    data: str
    game_id: Optional[str] = None


class CloudSaveUpdateIn(BaseModel):
    filename: Optional[str] = None
    data: Optional[str] = None


class CloudSaveSummaryOut(BaseModel):
    id: str
    game_id: str
    filename: str
    uploaded_at: datetime

    class Config:
        from_attributes = True


class CloudSaveOut(CloudSaveSummaryOut):
    data: str


class TransactionOut(BaseModel):
    id: str
    amount: float
    type: str
    description: str
    reference: Optional[str] = None
    game_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletOut(BaseModel):
    balance: float
    transactions: List[TransactionOut]
    owned_games: List[str]


class DepositCheckoutIn(BaseModel):
    amount: Decimal


class CheckoutOut(BaseModel):
    url: str
    session_id: str


class SessionIn(BaseModel):
    session_id: str


class DepositVerifyOut(BaseModel):
    message: str
    balance: float
    already_processed: bool = False


class GameIdIn(BaseModel):
    game_id: str


class PurchaseOut(BaseModel):
    message: str
    balance: float
    owned_games: List[str]
    discount_applied: int
    original_price: float
    final_price: float


class PriceOut(BaseModel):
    game_id: str
    base_price: float
    discounted_price: float
    discount_percent: int
    has_nexar_plus_discount: bool


class StripeKeyOut(BaseModel):
    publishable_key: str


class PinIn(BaseModel):
    pin: str


class PinVerifyOut(BaseModel):
    valid: bool


class ParentalSettingsIn(BaseModel):
    pin: str
    playtime_limit_minutes: Optional[int] = Field(default=None, ge=0)
    can_make_purchases: Optional[bool] = None
    restricted_ratings: Optional[List[str]] = None
    requires_parent_approval: Optional[bool] = None


class DailyPlaytimeOut(BaseModel):
    date: dt.date
    minutes_played: int

    class Config:
        from_attributes = True


class ParentalStatusOut(BaseModel):
    enabled: bool
    playtime_limit_minutes: Optional[int] = None
    can_make_purchases: bool
    restricted_ratings: List[str]
    requires_parent_approval: bool
    daily_playtime_log: DailyPlaytimeOut

    class Config:
        from_attributes = True


class AccessCheckIn(BaseModel):
    game_id: Optional[str] = None
    rating: Optional[str] = Field(default=None, validation_alias=AliasChoices("rating", "gameRating"))


class AccessOut(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class PurchaseCheckOut(AccessOut):
    requires_approval: bool = False


class PlaytimeIn(BaseModel):
    minutes: int = Field(ge=0)


class PlaytimeOut(BaseModel):
    date: dt.date
    minutes_played: int
    limit: Optional[int] = None


class TrialUpdateIn(BaseModel):
    game_id: str
    minutes_played: int = Field(ge=0)


class TrialOut(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    minutes_played: int = 0
    minutes_remaining: int = 0
    trial_duration: Optional[int] = None
    expired: bool = False


class CollectionAccessOut(BaseModel):
    allowed: bool
    is_nexar_plus_game: bool
    reason: Optional[str] = None


class CatalogGameOut(BaseModel):
    id: str
    name: str
    price: float
    trial_enabled: bool
    trial_duration_minutes: Optional[int] = None
    nexar_plus_discount: Optional[int] = None
    in_nexar_plus_collection: bool


class DeveloperApplyIn(BaseModel):
    studio_name: str
    contact_email: EmailStr
    website: str = ""
    description: str


class DeveloperStatusOut(BaseModel):
    role: str
    developer_profile: Optional[DeveloperProfileOut] = None


class ApplicationOut(BaseModel):
    user_id: str
    username: str
    email: str
    developer_profile: DeveloperProfileOut
    created_at: Optional[datetime] = None


class UserIdIn(BaseModel):
    user_id: str


class ListingCreateIn(BaseModel):
    title: str
    description: str
    genre: str
    price: Decimal = Field(ge=0)
    tags: List[str] = []
    cover_image: str = ""


class ListingUpdateIn(BaseModel):
    game_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None
    cover_image: Optional[str] = None


class ListingReviewIn(BaseModel):
    game_id: str


class ListingOut(BaseModel):
    id: str
    developer_id: str
    title: str
    description: str
    genre: str
    tags: List[str] = []
    price: float
    cover_image: str = ""
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StoreListingOut(ListingOut):
    developer_name: str


class ListingReviewOut(BaseModel):
    message: str
    listing: ListingOut


class PromoteAdminIn(BaseModel):
    secret_key: str
    target_user_id: Optional[str] = None
