"""
Activity notification evaluator.

evaluate(activity, now) decides, for one activity at one instant, whether a
reminder should fire and with which priority and message:

  1. Look up the unit's policy. No policy (or a non-positive period) is a
     data anomaly: logged, never fires, never raises.
  2. Compute the urgency percent.
  3. Walk the thresholds highest-first; the first tier whose percent is
     <= urgency and whose local-hour gate is open wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from lastmove.core.config import settings
from lastmove.models.notification import NotificationPriority
from lastmove.services.period import is_known_unit
from lastmove.services.policy import DEFAULT_POLICY_TABLE, PolicyTable
from lastmove.services.urgency import urgency_percent

logger = logging.getLogger(__name__)


class SkipReason:
    BELOW_THRESHOLD = "below_threshold"
    HOUR_GATE = "hour_gate"
    ANOMALY = "anomaly"


@dataclass
class ActivitySnapshot:
    """Flat view of an active activity plus its last execution."""
    id: int
    user_id: int
    title: str
    frequency_value: int
    frequency_unit: str
    last_executed_at: Optional[datetime] = None


@dataclass
class Evaluation:
    fire: bool
    percent: Optional[float] = None
    priority: Optional[NotificationPriority] = None
    message: Optional[str] = None
    reason: Optional[str] = None   # why it did not fire


def evaluate(
    activity: ActivitySnapshot,
    now: datetime,
    policies: PolicyTable = DEFAULT_POLICY_TABLE,
    tz: Optional[tzinfo] = None,
) -> Evaluation:
    unit = activity.frequency_unit
    policy = policies.get(unit)
    if policy is None or not is_known_unit(unit) or activity.frequency_value < 1:
        logger.warning(
            "Data anomaly: activity %s has unsupported period %r %r; skipping",
            activity.id, activity.frequency_value, unit,
        )
        return Evaluation(fire=False, reason=SkipReason.ANOMALY)

    percent = urgency_percent(
        activity.last_executed_at,
        activity.frequency_value,
        unit,
        now,
    )
    local_hour = now.astimezone(tz or settings.tz).hour

    gated = False
    for threshold in policy.thresholds:
        if percent < threshold.percent:
            continue
        if not threshold.hour_gate_open(local_hour):
            gated = True
            continue
        return Evaluation(
            fire=True,
            percent=percent,
            priority=threshold.priority,
            message=threshold.message,
        )

    return Evaluation(
        fire=False,
        percent=percent,
        reason=SkipReason.HOUR_GATE if gated else SkipReason.BELOW_THRESHOLD,
    )
