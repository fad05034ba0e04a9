from datetime import datetime, time
from typing import Any, Dict, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


class SignUpRequest(BaseModel):
    """Schema for creating a new user."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    # Send the user straight to Stripe checkout after authenticating
    price_id: Optional[str] = None


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    price_id: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=8, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100)
    confirm_password: str = Field(..., min_length=8, max_length=100)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("A nova senha e a confirmação não coincidem.")
        return self


class UpdateAccountRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=8, max_length=100)


class PreferencesUpdate(BaseModel):
    """Schema for updating user preferences. Unset fields are left untouched."""

    notification_time: Optional[time] = None
    notification_tz: Optional[str] = Field(None, max_length=50)
    theme: Optional[Literal["light", "dark", "system"]] = None
    push_subscription: Optional[Dict[str, Any]] = None

    @field_validator("notification_tz")
    @classmethod
    def validate_timezone(cls, v):
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("Fuso horário inválido.")
        return v


class User(BaseModel):
    """User model for API responses."""

    id: int
    name: Optional[str] = None
    email: EmailStr
    role: str
    created_at: datetime
    notification_time: Optional[time] = None
    notification_tz: str
    theme: str
    trial_end_date: Optional[datetime] = None
    notifications_enabled: bool = False

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_orm_user(cls, user) -> "User":
        data = cls.model_validate(user)
        data.notifications_enabled = user.push_subscription is not None
        return data


class Subscription(BaseModel):
    plan_name: Optional[str] = None
    subscription_status: Optional[str] = None
    stripe_product_id: Optional[str] = None
    has_customer: bool = False


class UserWithSubscription(BaseModel):
    """Current user plus the subscription state of their account."""

    user: User
    subscription: Optional[Subscription] = None
    is_premium: bool = False
