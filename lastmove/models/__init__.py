from .user import User, UserNotificationSettings
from .category import Category
from .activity import Activity, FrequencyUnit, FrequencyType
from .move import Move
from .notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)

__all__ = [
    "User",
    "UserNotificationSettings",
    "Category",
    "Activity",
    "FrequencyUnit",
    "FrequencyType",
    "Move",
    "Notification",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
]
