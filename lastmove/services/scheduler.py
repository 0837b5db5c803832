"""
Scheduler gate: is "now" one of the regular daily check instants?

An external trigger (cron, uptime pinger) calls the check roughly hourly and
may fire a few minutes late. Analysis only runs when the local wall-clock
time is within `tolerance_minutes` of a regular slot (19:00, 21:00, 23:00
Asia/Seoul by default); otherwise the check is a no-op that reports the next
slot.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, tzinfo
from typing import Sequence

from lastmove.core.config import settings


@dataclass(frozen=True)
class RegularSchedule:
    times: tuple[time, ...]
    tolerance_minutes: int
    tz: tzinfo

    def __post_init__(self) -> None:
        if not self.times:
            raise ValueError("RegularSchedule needs at least one regular time.")
        object.__setattr__(self, "times", tuple(sorted(self.times)))

    def _local(self, now: datetime) -> datetime:
        return now.astimezone(self.tz)

    def is_regular_time(self, now: datetime) -> bool:
        local = self._local(now)
        return any(
            slot.hour == local.hour
            and abs(slot.minute - local.minute) <= self.tolerance_minutes
            for slot in self.times
        )

    def next_regular_time(self, now: datetime) -> datetime:
        """First slot strictly after `now`; tomorrow's first slot if none remain today."""
        local = self._local(now)
        today = local.date()
        for slot in self.times:
            candidate = datetime.combine(today, slot, tzinfo=self.tz)
            if candidate > local:
                return candidate
        return datetime.combine(today + timedelta(days=1), self.times[0], tzinfo=self.tz)


def build_schedule(
    times: Sequence[time] | None = None,
    tolerance_minutes: int | None = None,
    tz: tzinfo | None = None,
) -> RegularSchedule:
    """Schedule from settings, with optional overrides."""
    return RegularSchedule(
        times=tuple(times if times is not None else settings.regular_times),
        tolerance_minutes=(
            tolerance_minutes
            if tolerance_minutes is not None
            else settings.REGULAR_TIME_TOLERANCE_MINUTES
        ),
        tz=tz or settings.tz,
    )
