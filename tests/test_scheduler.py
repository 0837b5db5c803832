"""
Tests for the regular-time gate.
"""
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from lastmove.services.scheduler import RegularSchedule, build_schedule

KST = ZoneInfo("Asia/Seoul")


@pytest.fixture()
def schedule():
    return build_schedule(
        times=[time(19, 0), time(21, 0), time(23, 0)],
        tolerance_minutes=5,
        tz=KST,
    )


class TestIsRegularTime:
    @pytest.mark.parametrize("hour,minute", [(19, 0), (19, 4), (19, 5), (21, 0), (23, 3)])
    def test_inside_tolerance(self, schedule, hour, minute):
        assert schedule.is_regular_time(datetime(2026, 3, 10, hour, minute, tzinfo=KST))

    @pytest.mark.parametrize("hour,minute", [(19, 6), (20, 0), (22, 0), (18, 58), (7, 0)])
    def test_outside_tolerance(self, schedule, hour, minute):
        assert not schedule.is_regular_time(datetime(2026, 3, 10, hour, minute, tzinfo=KST))

    def test_utc_input_is_converted(self, schedule):
        # 10:02 UTC is 19:02 in Seoul
        assert schedule.is_regular_time(datetime(2026, 3, 10, 10, 2, tzinfo=timezone.utc))

    def test_late_slot_tolerance_after_the_hour(self):
        s = build_schedule(times=[time(19, 30)], tolerance_minutes=5, tz=KST)
        assert s.is_regular_time(datetime(2026, 3, 10, 19, 35, tzinfo=KST))
        assert s.is_regular_time(datetime(2026, 3, 10, 19, 25, tzinfo=KST))
        assert not s.is_regular_time(datetime(2026, 3, 10, 19, 36, tzinfo=KST))


class TestNextRegularTime:
    def test_later_today(self, schedule):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=KST)
        assert schedule.next_regular_time(now) == datetime(2026, 3, 10, 19, 0, tzinfo=KST)

    def test_strictly_after_now(self, schedule):
        now = datetime(2026, 3, 10, 21, 0, tzinfo=KST)
        assert schedule.next_regular_time(now) == datetime(2026, 3, 10, 23, 0, tzinfo=KST)

    def test_rolls_over_to_tomorrow(self, schedule):
        now = datetime(2026, 3, 10, 23, 1, tzinfo=KST)
        assert schedule.next_regular_time(now) == datetime(2026, 3, 11, 19, 0, tzinfo=KST)

    def test_result_is_in_schedule_timezone(self, schedule):
        now = datetime(2026, 3, 10, 0, 0, tzinfo=timezone.utc)
        nxt = schedule.next_regular_time(now)
        assert nxt.tzinfo == KST
        assert nxt.hour == 19


class TestScheduleConstruction:
    def test_times_are_sorted(self):
        s = RegularSchedule(times=(time(23, 0), time(19, 0)), tolerance_minutes=5, tz=KST)
        assert s.times == (time(19, 0), time(23, 0))

    def test_empty_schedule_rejected(self):
        with pytest.raises(ValueError):
            RegularSchedule(times=(), tolerance_minutes=5, tz=KST)

    def test_defaults_come_from_settings(self):
        s = build_schedule()
        assert s.times == (time(19, 0), time(21, 0), time(23, 0))
        assert s.tolerance_minutes == 5
