"""
Per-user notification settings: the push subscription (one JSON blob in
user_notification_settings.push_subscription) and the per-kind toggles.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from lastmove.core.errors import UserNotFoundError
from lastmove.models.user import DEFAULT_LONG_INACTIVE_DAYS, User, UserNotificationSettings

logger = logging.getLogger(__name__)


def _settings_for(db: Session, user_id: int) -> Optional[UserNotificationSettings]:
    return (
        db.query(UserNotificationSettings)
        .filter(UserNotificationSettings.user_id == user_id)
        .first()
    )


def save_push_subscription(
    db: Session,
    user_id: int,
    subscription: dict[str, Any],
) -> UserNotificationSettings:
    """Create or replace the user's subscription. Raises UserNotFoundError."""
    if db.get(User, user_id) is None:
        raise UserNotFoundError(user_id)

    row = _settings_for(db, user_id)
    if row is None:
        row = UserNotificationSettings(user_id=user_id)
        db.add(row)
    row.push_subscription = json.dumps(subscription)
    db.commit()
    db.refresh(row)

    logger.info(
        "Saved push subscription for user %s (%s)",
        user_id, urlparse(subscription.get("endpoint", "")).hostname or "unknown host",
    )
    return row


def clear_push_subscription(db: Session, user_id: int) -> bool:
    """Remove the subscription. Returns False if there was none."""
    row = _settings_for(db, user_id)
    if row is None or not row.push_subscription:
        return False
    row.push_subscription = None
    db.commit()
    return True


def get_notification_settings(db: Session, user_id: int) -> UserNotificationSettings:
    """
    Stored settings, or an unsaved row carrying the column defaults when the
    user has none yet. Raises UserNotFoundError.
    """
    if db.get(User, user_id) is None:
        raise UserNotFoundError(user_id)
    row = _settings_for(db, user_id)
    if row is None:
        row = UserNotificationSettings(
            user_id=user_id,
            daily_reminder_enabled=True,
            long_inactive_enabled=True,
            long_inactive_days=DEFAULT_LONG_INACTIVE_DAYS,
            streak_celebration_enabled=True,
        )
    return row


def update_notification_settings(
    db: Session,
    user_id: int,
    changes: dict[str, Any],
) -> UserNotificationSettings:
    """Apply a partial update of the toggles. Raises UserNotFoundError."""
    row = get_notification_settings(db, user_id)
    if row.id is None:
        db.add(row)
    for name, value in changes.items():
        setattr(row, name, value)
    db.commit()
    db.refresh(row)

    logger.info("Updated notification settings for user %s: %s", user_id, sorted(changes))
    return row
