"""
Tests for the period model and the urgency calculator. No DB needed.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from lastmove.models.activity import FrequencyUnit
from lastmove.services.period import frequency_text, is_known_unit, period_hours
from lastmove.services.urgency import as_utc, days_since, urgency_percent

NOW = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


class TestPeriodHours:
    @pytest.mark.parametrize("unit,hours", [
        ("days", 24),
        ("weeks", 168),
        ("months", 720),
        ("quarters", 2160),
        ("years", 8760),
    ])
    def test_single_period(self, unit, hours):
        assert period_hours(1, unit) == hours

    def test_linear_in_value(self):
        for unit in FrequencyUnit:
            assert period_hours(3, unit) == 3 * period_hours(1, unit)

    def test_accepts_enum_members(self):
        assert period_hours(2, FrequencyUnit.weeks) == 336

    def test_unknown_unit_raises(self):
        with pytest.raises(KeyError):
            period_hours(1, "fortnights")

    def test_is_known_unit(self):
        assert is_known_unit("months")
        assert is_known_unit(FrequencyUnit.years)
        assert not is_known_unit("fortnights")


class TestFrequencyText:
    def test_singular(self):
        assert frequency_text(1, "weeks") == "1 week"

    def test_plural(self):
        assert frequency_text(3, "months") == "3 months"


class TestUrgencyPercent:
    def test_never_executed_is_fully_urgent(self):
        assert urgency_percent(None, 1, "years", NOW) == 100.0

    def test_half_elapsed(self):
        last = NOW - timedelta(hours=84)
        assert urgency_percent(last, 1, "weeks", NOW) == pytest.approx(50.0)

    def test_clamped_at_100(self):
        last = NOW - timedelta(days=30)
        assert urgency_percent(last, 1, "weeks", NOW) == 100.0

    def test_future_execution_clamped_at_0(self):
        last = NOW + timedelta(hours=5)
        assert urgency_percent(last, 1, "days", NOW) == 0.0

    def test_monotonic_in_elapsed_time(self):
        last = NOW - timedelta(days=10)
        values = [
            urgency_percent(last, 1, "months", NOW + timedelta(days=d))
            for d in range(0, 40, 3)
        ]
        assert values == sorted(values)

    def test_longer_period_is_less_urgent(self):
        last = NOW - timedelta(days=5)
        assert urgency_percent(last, 2, "weeks", NOW) < urgency_percent(last, 1, "weeks", NOW)

    def test_naive_last_executed_treated_as_utc(self):
        naive = (NOW - timedelta(hours=12)).replace(tzinfo=None)
        assert urgency_percent(naive, 1, "days", NOW) == pytest.approx(50.0)

    def test_timezone_of_inputs_does_not_matter(self):
        last = (NOW - timedelta(hours=6)).astimezone(ZoneInfo("Asia/Seoul"))
        assert urgency_percent(last, 1, "days", NOW) == pytest.approx(25.0)


class TestDaysSince:
    def test_none_when_never_executed(self):
        assert days_since(None, NOW) is None

    def test_floors_partial_days(self):
        assert days_since(NOW - timedelta(hours=71), NOW) == 2

    def test_as_utc_converts_aware_values(self):
        seoul = datetime(2026, 3, 10, 23, 0, tzinfo=ZoneInfo("Asia/Seoul"))
        assert as_utc(seoul) == datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)
