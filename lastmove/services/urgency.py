"""
Urgency calculator.

urgency_percent() is the single source of truth for "how overdue is this
activity". The notification evaluator and any UI colouring both derive from
it, so what users see and what triggers a push always agree.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional

from lastmove.services.period import period_hours

NEVER_EXECUTED_PERCENT = 100.0


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes (SQLite round-trips) are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600.0


def urgency_percent(
    last_executed_at: Optional[datetime],
    frequency_value: int,
    frequency_unit,
    now: datetime,
) -> float:
    """
    Elapsed share of the activity's period, as a percentage clamped to [0, 100].
    An activity that was never executed is fully urgent (100).
    """
    if last_executed_at is None:
        return NEVER_EXECUTED_PERCENT

    elapsed = hours_between(last_executed_at, now)
    percent = 100.0 * elapsed / period_hours(frequency_value, frequency_unit)
    return min(100.0, max(0.0, percent))


def days_since(last_executed_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since the last move, or None if there is none."""
    if last_executed_at is None:
        return None
    return max(0, math.floor(hours_between(last_executed_at, now) / 24))
