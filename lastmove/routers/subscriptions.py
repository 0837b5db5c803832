"""
Push subscription and notification settings router.

PUT    /users/{user_id}/push-subscription       - store / replace
DELETE /users/{user_id}/push-subscription       - clear
GET    /users/{user_id}/notification-settings   - current toggles
PUT    /users/{user_id}/notification-settings   - partial update of the toggles
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lastmove.db.base import get_db
from lastmove.models.user import UserNotificationSettings
from lastmove.schemas.subscription import (
    NotificationSettingsIn,
    NotificationSettingsOut,
    PushSubscriptionIn,
    SubscriptionResponse,
)
from lastmove.services.subscriptions import (
    clear_push_subscription,
    get_notification_settings,
    save_push_subscription,
    update_notification_settings,
)

router = APIRouter(prefix="/users", tags=["subscriptions"])


@router.put(
    "/{user_id}/push-subscription",
    response_model=SubscriptionResponse,
    summary="Store the browser push subscription for a user",
    responses={404: {"description": "User does not exist."}},
)
def put_push_subscription(
    user_id: int,
    payload: PushSubscriptionIn,
    db: Session = Depends(get_db),
):
    row = save_push_subscription(db, user_id, payload.model_dump(exclude_none=True))
    return SubscriptionResponse(
        user_id=user_id,
        has_subscription=True,
        updated_at=row.updated_at.isoformat() if row.updated_at else None,
    )


@router.delete(
    "/{user_id}/push-subscription",
    response_model=SubscriptionResponse,
    summary="Remove the push subscription for a user",
)
def delete_push_subscription(user_id: int, db: Session = Depends(get_db)):
    clear_push_subscription(db, user_id)
    return SubscriptionResponse(user_id=user_id, has_subscription=False)


def _settings_to_out(row: UserNotificationSettings) -> NotificationSettingsOut:
    return NotificationSettingsOut(
        user_id=row.user_id,
        daily_reminder_enabled=row.daily_reminder_enabled,
        long_inactive_enabled=row.long_inactive_enabled,
        long_inactive_days=row.long_inactive_days,
        streak_celebration_enabled=row.streak_celebration_enabled,
        has_subscription=bool(row.push_subscription),
    )


@router.get(
    "/{user_id}/notification-settings",
    response_model=NotificationSettingsOut,
    summary="Notification toggles for a user",
    responses={404: {"description": "User does not exist."}},
)
def read_notification_settings(user_id: int, db: Session = Depends(get_db)):
    return _settings_to_out(get_notification_settings(db, user_id))


@router.put(
    "/{user_id}/notification-settings",
    response_model=NotificationSettingsOut,
    summary="Switch notification kinds on or off for a user",
    responses={404: {"description": "User does not exist."}},
)
def put_notification_settings(
    user_id: int,
    payload: NotificationSettingsIn,
    db: Session = Depends(get_db),
):
    row = update_notification_settings(db, user_id, payload.model_dump(exclude_none=True))
    return _settings_to_out(row)
