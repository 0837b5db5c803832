"""
Batch analyzer: finds every activity, across all users, that is due a
reminder right now and persists one Notification row per target.

Public API
----------
load_activity_snapshots(db)                       -> list[ActivitySnapshot]
build_request(activity, evaluation, now)          -> NotificationRequest
persist_request(db, request)                      -> Notification (not committed)
analyze_notification_targets(db, now, ...)        -> AnalysisResult

De-duplication
--------------
By default no check is made against earlier unsent reminders: the scheduler
gate bounds how often analysis runs (three regular slots a day), and one row
per activity per slot is the accepted cost. Passing `dedupe_window` skips an
activity that already has an unsent daily_reminder scheduled inside that
window.

db.commit() is called once at the end.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from lastmove.core.config import settings
from lastmove.models.activity import Activity, FrequencyUnit
from lastmove.models.move import Move
from lastmove.models.user import UserNotificationSettings
from lastmove.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from lastmove.services.evaluator import (
    ActivitySnapshot,
    Evaluation,
    SkipReason,
    evaluate,
)
from lastmove.services.period import frequency_text
from lastmove.services.policy import DEFAULT_POLICY_TABLE, PolicyTable
from lastmove.services.urgency import as_utc, days_since, utcnow

logger = logging.getLogger(__name__)

REMINDER_DATA_TYPE = "activity_reminder"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class NotificationRequest:
    user_id: int
    activity_id: int
    type: NotificationType
    priority: NotificationPriority
    title: str
    body: str
    data: dict[str, Any]
    scheduled_at: datetime


@dataclass
class AnalysisResult:
    analyzed_activities: int = 0
    notification_targets: int = 0
    skipped_duplicates: int = 0
    anomalies: int = 0
    created_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Analyzed {self.analyzed_activities} activities, "
            f"created {len(self.created_ids)} notifications"
        )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_activity_snapshots(db: Session) -> list[ActivitySnapshot]:
    """
    All active activities with their latest move (None if never executed),
    except those of users who switched daily reminders off.
    """
    last_executed_at = func.max(Move.executed_at).label("last_executed_at")
    rows = (
        db.query(
            Activity.id,
            Activity.user_id,
            Activity.title,
            Activity.frequency_value,
            Activity.frequency_unit,
            last_executed_at,
        )
        .outerjoin(Move, Move.activity_id == Activity.id)
        .outerjoin(UserNotificationSettings, UserNotificationSettings.user_id == Activity.user_id)
        .filter(
            Activity.is_active == True,  # noqa: E712
            or_(
                UserNotificationSettings.id.is_(None),
                UserNotificationSettings.daily_reminder_enabled == True,  # noqa: E712
            ),
        )
        .group_by(
            Activity.id,
            Activity.user_id,
            Activity.title,
            Activity.frequency_value,
            Activity.frequency_unit,
        )
        .order_by(Activity.user_id, Activity.id)
        .all()
    )
    return [
        ActivitySnapshot(
            id=r.id,
            user_id=r.user_id,
            title=r.title,
            frequency_value=r.frequency_value,
            frequency_unit=r.frequency_unit,
            last_executed_at=as_utc(r.last_executed_at) if r.last_executed_at else None,
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------

def build_request(
    activity: ActivitySnapshot,
    evaluation: Evaluation,
    now: datetime,
) -> NotificationRequest:
    period = frequency_text(activity.frequency_value, activity.frequency_unit)
    elapsed = days_since(activity.last_executed_at, now)
    if elapsed is None:
        context = f"every {period}, not done yet"
    else:
        context = f"every {period}, {frequency_text(elapsed, FrequencyUnit.days)} since last move"

    return NotificationRequest(
        user_id=activity.user_id,
        activity_id=activity.id,
        type=NotificationType.daily_reminder,
        priority=evaluation.priority,
        title=f"{activity.title} reminder",
        body=f"{evaluation.message} ({context})",
        data={
            "activity_id": activity.id,
            "urgency_percent": round(evaluation.percent, 2),
            "frequency_text": period,
            "days_since_last_move": elapsed,
            "type": REMINDER_DATA_TYPE,
        },
        scheduled_at=now,
    )


def _has_recent_unsent(
    db: Session,
    activity_id: int,
    now: datetime,
    window: timedelta,
) -> bool:
    return (
        db.query(Notification.id)
        .filter(
            Notification.activity_id == activity_id,
            Notification.type == NotificationType.daily_reminder,
            Notification.is_sent == False,  # noqa: E712
            Notification.status.in_([NotificationStatus.pending, NotificationStatus.retrying]),
            Notification.scheduled_at >= now - window,
        )
        .first()
        is not None
    )


def persist_request(db: Session, request: NotificationRequest) -> Notification:
    notification = Notification(
        user_id=request.user_id,
        activity_id=request.activity_id,
        type=request.type,
        priority=request.priority,
        status=NotificationStatus.pending,
        title=request.title,
        body=request.body,
        icon=settings.NOTIFICATION_ICON,
        badge=settings.NOTIFICATION_BADGE,
        data=json.dumps(request.data),
        scheduled_at=request.scheduled_at,
        is_sent=False,
        retry_count=0,
    )
    db.add(notification)
    return notification


# ---------------------------------------------------------------------------
# Public: main entry point
# ---------------------------------------------------------------------------

def analyze_notification_targets(
    db: Session,
    now: Optional[datetime] = None,
    policies: PolicyTable = DEFAULT_POLICY_TABLE,
    tz: Optional[tzinfo] = None,
    dedupe_window: Optional[timedelta] = None,
) -> AnalysisResult:
    """
    Evaluate every active activity at `now` and create a pending
    Notification for each one that fires.
    """
    now = as_utc(now) if now else utcnow()
    activities = load_activity_snapshots(db)
    result = AnalysisResult(analyzed_activities=len(activities))

    created: list[Notification] = []
    for activity in activities:
        evaluation = evaluate(activity, now, policies=policies, tz=tz)
        if not evaluation.fire:
            if evaluation.reason == SkipReason.ANOMALY:
                result.anomalies += 1
            continue

        result.notification_targets += 1
        if dedupe_window is not None and _has_recent_unsent(db, activity.id, now, dedupe_window):
            result.skipped_duplicates += 1
            continue

        created.append(persist_request(db, build_request(activity, evaluation, now)))

    if created:
        db.flush()
        result.created_ids = [n.id for n in created]
    db.commit()

    logger.info(
        "Notification analysis: %d activities, %d targets, %d created, "
        "%d duplicates skipped, %d anomalies",
        result.analyzed_activities,
        result.notification_targets,
        len(result.created_ids),
        result.skipped_duplicates,
        result.anomalies,
    )
    return result
