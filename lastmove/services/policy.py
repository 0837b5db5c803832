"""
Notification policy table: which urgency tiers fire, per frequency unit.

Policies are plain immutable data injected into the evaluator, so an
alternate table can be tested or deployed without touching code.

Reference table
---------------
  unit      thresholds (percent → priority)
  days      100 → high   (only from 23:00 local time: "remind at day's end")
  weeks      95 → high,  80 → normal
  months     95 → high,  85 → normal
  quarters   90 → high,  80 → normal
  years      95 → high,  90 → normal

Thresholds are always held highest-first; the evaluator picks the first
(i.e. most urgent) tier whose percent is <= the computed urgency.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from lastmove.models.activity import FrequencyUnit
from lastmove.models.notification import NotificationPriority


@dataclass(frozen=True)
class Threshold:
    percent: float
    priority: NotificationPriority
    message: str
    # Tier only fires when the local evaluation hour is >= this value.
    min_local_hour: Optional[int] = None

    def hour_gate_open(self, local_hour: int) -> bool:
        return self.min_local_hour is None or local_hour >= self.min_local_hour


@dataclass(frozen=True)
class UnitPolicy:
    unit: str
    thresholds: tuple[Threshold, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.thresholds, key=lambda t: t.percent, reverse=True))
        object.__setattr__(self, "thresholds", ordered)


PolicyTable = Mapping[str, UnitPolicy]


def build_policy_table(policies: Iterable[UnitPolicy]) -> PolicyTable:
    """Freeze a collection of unit policies into a read-only mapping."""
    return MappingProxyType({p.unit: p for p in policies})


DAY_END_HOUR = 23

DEFAULT_POLICY_TABLE: PolicyTable = build_policy_table([
    UnitPolicy(
        unit=FrequencyUnit.days.value,
        thresholds=(
            Threshold(
                100, NotificationPriority.high,
                "Today's activity is not done yet.",
                min_local_hour=DAY_END_HOUR,
            ),
        ),
    ),
    UnitPolicy(
        unit=FrequencyUnit.weeks.value,
        thresholds=(
            Threshold(80, NotificationPriority.normal, "Your weekly activity is coming due."),
            Threshold(95, NotificationPriority.high, "Your weekly activity is almost overdue."),
        ),
    ),
    UnitPolicy(
        unit=FrequencyUnit.months.value,
        thresholds=(
            Threshold(85, NotificationPriority.normal, "Your monthly activity is coming due."),
            Threshold(95, NotificationPriority.high, "Your monthly activity is almost overdue."),
        ),
    ),
    UnitPolicy(
        unit=FrequencyUnit.quarters.value,
        thresholds=(
            Threshold(80, NotificationPriority.normal, "Your quarterly activity is coming due."),
            Threshold(90, NotificationPriority.high, "Your quarterly activity is almost overdue."),
        ),
    ),
    UnitPolicy(
        unit=FrequencyUnit.years.value,
        thresholds=(
            Threshold(90, NotificationPriority.normal, "Your yearly activity is coming due."),
            Threshold(95, NotificationPriority.high, "Your yearly activity is almost overdue."),
        ),
    ),
])
