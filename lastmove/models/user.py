from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from lastmove.db.base import Base

DEFAULT_LONG_INACTIVE_DAYS = 7


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UserNotificationSettings(Base):
    """
    Per-user notification settings. One row per user.

    push_subscription: JSON-encoded Web Push subscription
    ({"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}) stored as Text.
    The engine hands it to the push transport without interpreting it.

    The *_enabled flags switch each notification kind off for this user; a
    user with no settings row gets every kind, with the default
    long_inactive_days.
    """

    __tablename__ = "user_notification_settings"
    __table_args__ = (
        CheckConstraint(
            "long_inactive_days >= 1",
            name="ck_notification_settings_long_inactive_days_positive",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    daily_reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    long_inactive_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    long_inactive_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_LONG_INACTIVE_DAYS
    )
    streak_celebration_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push_subscription: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
