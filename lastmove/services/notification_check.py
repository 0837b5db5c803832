"""
Notification check orchestration: what the hourly trigger actually calls.

Public API
----------
check_scheduled_notifications(db, now)   -> CheckResult   (gated)
trigger_manual_check(db, now)            -> AnalysisResult (ungated, for ops/testing)
get_user_notification_stats(db, user_id) -> NotificationStats
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from lastmove.core.config import settings
from lastmove.models.notification import Notification, NotificationStatus
from lastmove.services.analyzer import AnalysisResult, analyze_notification_targets
from lastmove.services.scheduler import RegularSchedule, build_schedule
from lastmove.services.urgency import as_utc, utcnow

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30
STATS_RECENT_LIMIT = 10


@dataclass
class CheckResult:
    is_regular_time: bool
    current_time: datetime          # local time in the configured timezone
    next_regular_time: datetime
    message: str
    analysis: Optional[AnalysisResult] = None


@dataclass
class NotificationStats:
    total: int
    sent: int
    pending: int
    failed: int
    recent: list[Notification] = field(default_factory=list)


def _dedupe_window() -> Optional[timedelta]:
    minutes = settings.NOTIFICATION_DEDUPE_WINDOW_MINUTES
    return timedelta(minutes=minutes) if minutes > 0 else None


def _analyze(db: Session, now: datetime, schedule: RegularSchedule) -> AnalysisResult:
    return analyze_notification_targets(
        db,
        now=now,
        tz=schedule.tz,
        dedupe_window=_dedupe_window(),
    )


def check_scheduled_notifications(
    db: Session,
    now: Optional[datetime] = None,
    schedule: Optional[RegularSchedule] = None,
) -> CheckResult:
    """Run the batch analyzer only if `now` is a regular check time."""
    now = as_utc(now) if now else utcnow()
    schedule = schedule or build_schedule()
    local = now.astimezone(schedule.tz)
    next_time = schedule.next_regular_time(now)

    if not schedule.is_regular_time(now):
        logger.info(
            "Not a regular notification time (%s); next at %s",
            local.strftime("%H:%M"), next_time.isoformat(),
        )
        return CheckResult(
            is_regular_time=False,
            current_time=local,
            next_regular_time=next_time,
            message=f"Not a regular notification time ({local:%H:%M}), waiting",
        )

    analysis = _analyze(db, now, schedule)
    return CheckResult(
        is_regular_time=True,
        current_time=local,
        next_regular_time=next_time,
        message=f"Regular notification time ({local:%H:%M}): {analysis.message}",
        analysis=analysis,
    )


def trigger_manual_check(
    db: Session,
    now: Optional[datetime] = None,
    schedule: Optional[RegularSchedule] = None,
) -> AnalysisResult:
    """Bypass the scheduler gate and analyze unconditionally."""
    now = as_utc(now) if now else utcnow()
    logger.info("Manual notification check triggered")
    return _analyze(db, now, schedule or build_schedule())


def get_user_notification_stats(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
) -> NotificationStats:
    """Counts over the last 30 days plus the 10 most recent notifications."""
    now = as_utc(now) if now else utcnow()
    since = now - timedelta(days=STATS_WINDOW_DAYS)

    base = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.created_at >= since,
    )
    total = base.count()
    sent = base.filter(Notification.is_sent == True).count()  # noqa: E712
    pending = base.filter(
        Notification.is_sent == False,  # noqa: E712
        Notification.status.in_([NotificationStatus.pending, NotificationStatus.retrying]),
        Notification.scheduled_at <= now,
    ).count()
    failed = base.filter(Notification.status == NotificationStatus.failed_permanent).count()

    recent = (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(STATS_RECENT_LIMIT)
        .all()
    )
    return NotificationStats(total=total, sent=sent, pending=pending, failed=failed, recent=recent)
