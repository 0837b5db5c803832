"""
Notification: one push message waiting for, or past, delivery.

Created with status="pending" by the batch analyzer (daily_reminder) or the
engagement generators (long_inactive, streak_celebration); mutated only by
the delivery dispatcher.

State machine (status):
  pending ──► sent
     │
     └──► retrying(retry_count = n) ──► sent
                    │
                    └──► failed_permanent   (retry_count >= MAX_RETRY_COUNT)

is_sent / sent_at mirror the "sent" state for clients that only read those.
claimed_at is set by a dispatcher run while it owns the row, and cleared
when the run is done with it.

data: JSON-encoded dict stored as Text (activity id, urgency percent, …).
"""
from datetime import datetime
import enum

from sqlalchemy import Integer, String, Text, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from lastmove.db.base import Base


class NotificationType(str, enum.Enum):
    daily_reminder = "daily_reminder"            # urgency-driven, batch analyzer
    long_inactive = "long_inactive"              # no move for N days
    streak_celebration = "streak_celebration"    # 3 / 7 / 30 day streak


class NotificationPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class NotificationStatus(str, enum.Enum):
    pending = "pending"
    retrying = "retrying"
    sent = "sent"
    failed_permanent = "failed_permanent"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("activities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type: Mapped[str] = mapped_column(
        Enum(NotificationType, name="notification_type_enum"),
        nullable=False,
    )
    priority: Mapped[str] = mapped_column(
        Enum(NotificationPriority, name="notification_priority_enum"),
        nullable=False,
        default=NotificationPriority.normal,
    )
    status: Mapped[str] = mapped_column(
        Enum(NotificationStatus, name="notification_status_enum"),
        nullable=False,
        default=NotificationStatus.pending,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(256), nullable=True)
    badge: Mapped[str | None] = mapped_column(String(256), nullable=True)
    data: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON-encoded dict delivered to the client with the push message",
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
