"""
Period model: converts a (value, unit) recurrence into a duration in hours.

Calendar approximations, not astronomical ones:
  days     = 24 h
  weeks    = 7 days
  months   = 30 days
  quarters = 90 days
  years    = 365 days

An unknown unit is a programming error and raises KeyError. Callers that
read units from storage check `is_known_unit` first.
"""
from __future__ import annotations

from lastmove.models.activity import FrequencyUnit

HOURS_PER_UNIT: dict[str, int] = {
    FrequencyUnit.days.value: 24,
    FrequencyUnit.weeks.value: 24 * 7,
    FrequencyUnit.months.value: 24 * 30,
    FrequencyUnit.quarters.value: 24 * 90,
    FrequencyUnit.years.value: 24 * 365,
}

_UNIT_LABELS: dict[str, tuple[str, str]] = {
    FrequencyUnit.days.value: ("day", "days"),
    FrequencyUnit.weeks.value: ("week", "weeks"),
    FrequencyUnit.months.value: ("month", "months"),
    FrequencyUnit.quarters.value: ("quarter", "quarters"),
    FrequencyUnit.years.value: ("year", "years"),
}


def _unit_key(unit) -> str:
    return unit.value if hasattr(unit, "value") else str(unit)


def is_known_unit(unit) -> bool:
    return _unit_key(unit) in HOURS_PER_UNIT


def period_hours(value: int, unit) -> float:
    """Length of one period of `value` x `unit`, in hours."""
    return float(value * HOURS_PER_UNIT[_unit_key(unit)])


def frequency_text(value: int, unit) -> str:
    """Human-readable period, e.g. "1 week" or "3 months"."""
    singular, plural = _UNIT_LABELS[_unit_key(unit)]
    return f"{value} {singular if value == 1 else plural}"
