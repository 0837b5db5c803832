"""
Push subscription schemas.

PUT /users/{user_id}/push-subscription → PushSubscriptionIn → SubscriptionResponse
PUT /users/{user_id}/notification-settings → NotificationSettingsIn → NotificationSettingsOut
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionIn(BaseModel):
    """Browser PushSubscription.toJSON() shape."""
    endpoint: str = Field(min_length=1, examples=["https://fcm.googleapis.com/fcm/send/abc"])
    expirationTime: Optional[float] = None
    keys: PushSubscriptionKeys


class SubscriptionResponse(BaseModel):
    user_id: int
    has_subscription: bool
    updated_at: Optional[str] = None


class NotificationSettingsIn(BaseModel):
    """Partial update: omitted fields keep their stored value."""
    daily_reminder_enabled: Optional[bool] = None
    long_inactive_enabled: Optional[bool] = None
    long_inactive_days: Optional[int] = Field(default=None, ge=1, le=365)
    streak_celebration_enabled: Optional[bool] = None


class NotificationSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    daily_reminder_enabled: bool
    long_inactive_enabled: bool
    long_inactive_days: int
    streak_celebration_enabled: bool
    has_subscription: bool
