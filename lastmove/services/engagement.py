"""
Engagement generators: the notification kinds that sit beside the urgency
analyzer.

Public API
----------
create_long_inactive_reminders(db, now)     -> GenerationResult
create_streak_celebrations(db, now, tz)     -> GenerationResult
current_streak(dates, today)                -> int

Each generator runs across all users, honours the per-user *_enabled flag
in user_notification_settings (no settings row means enabled), and commits
once at the end. Created rows are pending and go out through the normal
dispatcher.

De-duplication
--------------
long_inactive:      one reminder per activity per `long_inactive_days` window.
streak_celebration: one celebration per activity per local day.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from lastmove.core.config import settings
from lastmove.models.activity import Activity, FrequencyUnit
from lastmove.models.move import Move
from lastmove.models.notification import Notification, NotificationPriority, NotificationType
from lastmove.models.user import DEFAULT_LONG_INACTIVE_DAYS, UserNotificationSettings
from lastmove.services.analyzer import NotificationRequest, persist_request
from lastmove.services.period import frequency_text
from lastmove.services.urgency import as_utc, days_since, utcnow

logger = logging.getLogger(__name__)

LONG_INACTIVE_DELAY = timedelta(hours=1)
STREAK_DELAY = timedelta(minutes=5)
STREAK_LOOKBACK_DAYS = 30

# streak length -> (title, body template)
STREAK_MILESTONES: dict[int, tuple[str, str]] = {
    3: ("3-day streak!", '"{title}" three days in a row. Keep it going!'),
    7: ("One-week streak!", '"{title}" every day for a week. Great rhythm!'),
    30: ("30-day streak!", '"{title}" every day for a month. It is a habit now!'),
}


@dataclass
class GenerationResult:
    type: NotificationType
    candidates: int = 0
    skipped_duplicates: int = 0
    created_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Found {self.candidates} {self.type.value} candidates, "
            f"created {len(self.created_ids)} notifications"
        )


def _enabled(flag):
    return or_(UserNotificationSettings.id.is_(None), flag == True)  # noqa: E712


def _already_scheduled(
    db: Session,
    activity_id: int,
    kind: NotificationType,
    since: datetime,
) -> bool:
    return (
        db.query(Notification.id)
        .filter(
            Notification.activity_id == activity_id,
            Notification.type == kind,
            Notification.scheduled_at >= since,
        )
        .first()
        is not None
    )


def _finish(db: Session, result: GenerationResult, created: list[Notification]) -> GenerationResult:
    if created:
        db.flush()
        result.created_ids = [n.id for n in created]
    db.commit()
    logger.info(
        "%s generation: %d candidates, %d created, %d duplicates skipped",
        result.type.value,
        result.candidates,
        len(result.created_ids),
        result.skipped_duplicates,
    )
    return result


# ---------------------------------------------------------------------------
# Long inactive
# ---------------------------------------------------------------------------

def create_long_inactive_reminders(
    db: Session,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """
    Remind users about activities with no move in their `long_inactive_days`
    (7 by default), including activities that were never executed.
    """
    now = as_utc(now) if now else utcnow()
    last_executed_at = func.max(Move.executed_at).label("last_executed_at")
    rows = (
        db.query(
            Activity.id,
            Activity.user_id,
            Activity.title,
            Activity.category_id,
            UserNotificationSettings.long_inactive_days,
            last_executed_at,
        )
        .outerjoin(Move, Move.activity_id == Activity.id)
        .outerjoin(UserNotificationSettings, UserNotificationSettings.user_id == Activity.user_id)
        .filter(
            Activity.is_active == True,  # noqa: E712
            _enabled(UserNotificationSettings.long_inactive_enabled),
        )
        .group_by(
            Activity.id,
            Activity.user_id,
            Activity.title,
            Activity.category_id,
            UserNotificationSettings.long_inactive_days,
        )
        .order_by(Activity.user_id, Activity.id)
        .all()
    )

    result = GenerationResult(type=NotificationType.long_inactive)
    created: list[Notification] = []
    for r in rows:
        window = timedelta(days=r.long_inactive_days or DEFAULT_LONG_INACTIVE_DAYS)
        last = as_utc(r.last_executed_at) if r.last_executed_at else None
        if last is not None and last >= now - window:
            continue

        result.candidates += 1
        if _already_scheduled(db, r.id, NotificationType.long_inactive, now - window):
            result.skipped_duplicates += 1
            continue

        elapsed = days_since(last, now)
        if elapsed is None:
            body = f'"{r.title}" has no moves yet. A small start makes a big difference!'
        else:
            gone = frequency_text(elapsed, FrequencyUnit.days)
            body = f'"{r.title}" has gone {gone} without a move. A small start makes a big difference!'

        created.append(persist_request(db, NotificationRequest(
            user_id=r.user_id,
            activity_id=r.id,
            type=NotificationType.long_inactive,
            priority=NotificationPriority.normal,
            title="Time to start again",
            body=body,
            data={
                "activity_id": r.id,
                "title": r.title,
                "category_id": r.category_id,
                "days_since_last_move": elapsed,
                "type": NotificationType.long_inactive.value,
            },
            scheduled_at=now + LONG_INACTIVE_DELAY,
        )))

    return _finish(db, result, created)


# ---------------------------------------------------------------------------
# Streak celebrations
# ---------------------------------------------------------------------------

def current_streak(dates: Iterable[date], today: date) -> int:
    """Consecutive days with a move, ending today. 0 if today has none."""
    days = set(dates)
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def create_streak_celebrations(
    db: Session,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> GenerationResult:
    """
    Celebrate activities whose daily streak, counted in local days up to and
    including today, has just reached a milestone (3, 7 or 30 days).
    """
    now = as_utc(now) if now else utcnow()
    tz = tz or settings.tz
    today = now.astimezone(tz).date()
    start_of_today = as_utc(datetime.combine(today, time.min, tzinfo=tz))

    rows = (
        db.query(Activity.id, Activity.user_id, Activity.title, Activity.category_id, Move.executed_at)
        .join(Move, Move.activity_id == Activity.id)
        .outerjoin(UserNotificationSettings, UserNotificationSettings.user_id == Activity.user_id)
        .filter(
            Activity.is_active == True,  # noqa: E712
            Move.executed_at >= now - timedelta(days=STREAK_LOOKBACK_DAYS),
            Move.executed_at <= now,
            _enabled(UserNotificationSettings.streak_celebration_enabled),
        )
        .order_by(Activity.user_id, Activity.id)
        .all()
    )

    activities: dict[int, tuple] = {}
    move_dates: dict[int, set[date]] = defaultdict(set)
    for r in rows:
        activities[r.id] = (r.user_id, r.title, r.category_id)
        move_dates[r.id].add(as_utc(r.executed_at).astimezone(tz).date())

    result = GenerationResult(type=NotificationType.streak_celebration)
    created: list[Notification] = []
    for activity_id, (user_id, title, category_id) in activities.items():
        streak = current_streak(move_dates[activity_id], today)
        if streak not in STREAK_MILESTONES:
            continue

        result.candidates += 1
        if _already_scheduled(db, activity_id, NotificationType.streak_celebration, start_of_today):
            result.skipped_duplicates += 1
            continue

        heading, template = STREAK_MILESTONES[streak]
        created.append(persist_request(db, NotificationRequest(
            user_id=user_id,
            activity_id=activity_id,
            type=NotificationType.streak_celebration,
            priority=NotificationPriority.high,
            title=heading,
            body=template.format(title=title),
            data={
                "activity_id": activity_id,
                "title": title,
                "category_id": category_id,
                "streak_days": streak,
                "type": NotificationType.streak_celebration.value,
            },
            scheduled_at=now + STREAK_DELAY,
        )))

    return _finish(db, result, created)
