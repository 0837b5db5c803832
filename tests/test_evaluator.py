"""
Tests for the policy table and the per-activity evaluator. No DB needed.
"""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from lastmove.models.notification import NotificationPriority
from lastmove.services.evaluator import ActivitySnapshot, SkipReason, evaluate
from lastmove.services.policy import (
    DEFAULT_POLICY_TABLE,
    Threshold,
    UnitPolicy,
    build_policy_table,
)

KST = ZoneInfo("Asia/Seoul")


def snapshot(unit="weeks", value=1, last=None, **kw) -> ActivitySnapshot:
    return ActivitySnapshot(
        id=kw.get("id", 1),
        user_id=kw.get("user_id", 1),
        title=kw.get("title", "Exercise"),
        frequency_value=value,
        frequency_unit=unit,
        last_executed_at=last,
    )


# ---------------------------------------------------------------------------
# Policy table
# ---------------------------------------------------------------------------

class TestPolicyTable:
    def test_covers_every_unit(self):
        assert set(DEFAULT_POLICY_TABLE) == {"days", "weeks", "months", "quarters", "years"}

    def test_thresholds_held_highest_first(self):
        for policy in DEFAULT_POLICY_TABLE.values():
            percents = [t.percent for t in policy.thresholds]
            assert percents == sorted(percents, reverse=True)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_POLICY_TABLE["days"] = UnitPolicy(unit="days")

    def test_only_days_is_hour_gated(self):
        gated = {
            unit for unit, policy in DEFAULT_POLICY_TABLE.items()
            if any(t.min_local_hour is not None for t in policy.thresholds)
        }
        assert gated == {"days"}


# ---------------------------------------------------------------------------
# Weekly tiers
# ---------------------------------------------------------------------------

class TestWeeklyTiers:
    NOW = datetime(2026, 3, 10, 19, 0, tzinfo=KST)

    def test_96_percent_is_high(self):
        last = self.NOW - timedelta(hours=168 * 0.96)
        result = evaluate(snapshot(last=last), self.NOW)
        assert result.fire
        assert result.priority == NotificationPriority.high
        assert result.percent == pytest.approx(96.0)

    def test_85_percent_is_normal(self):
        last = self.NOW - timedelta(hours=168 * 0.85)
        result = evaluate(snapshot(last=last), self.NOW)
        assert result.fire
        assert result.priority == NotificationPriority.normal
        assert result.message == "Your weekly activity is coming due."

    def test_below_lowest_tier_does_not_fire(self):
        last = self.NOW - timedelta(hours=168 * 0.5)
        result = evaluate(snapshot(last=last), self.NOW)
        assert not result.fire
        assert result.reason == SkipReason.BELOW_THRESHOLD

    def test_never_executed_fires_high(self):
        result = evaluate(snapshot(last=None), self.NOW)
        assert result.fire
        assert result.priority == NotificationPriority.high
        assert result.percent == 100.0

    def test_just_above_lowest_tier_fires(self):
        last = self.NOW - timedelta(hours=168 * 0.81)
        assert evaluate(snapshot(last=last), self.NOW).fire

    def test_just_below_lowest_tier_does_not_fire(self):
        last = self.NOW - timedelta(hours=168 * 0.79)
        assert not evaluate(snapshot(last=last), self.NOW).fire


class TestOtherUnits:
    NOW = datetime(2026, 6, 1, 21, 0, tzinfo=KST)

    @pytest.mark.parametrize("unit,percent,priority", [
        ("months", 86, NotificationPriority.normal),
        ("months", 95, NotificationPriority.high),
        ("quarters", 81, NotificationPriority.normal),
        ("quarters", 91, NotificationPriority.high),
        ("years", 90.5, NotificationPriority.normal),
        ("years", 97, NotificationPriority.high),
    ])
    def test_tiers(self, unit, percent, priority):
        hours = {"months": 720, "quarters": 2160, "years": 8760}[unit]
        last = self.NOW - timedelta(hours=hours * percent / 100)
        result = evaluate(snapshot(unit=unit, last=last), self.NOW)
        assert result.fire
        assert result.priority == priority

    def test_quarter_at_85_is_normal_not_silent(self):
        last = self.NOW - timedelta(hours=2160 * 0.85)
        assert evaluate(snapshot(unit="quarters", last=last), self.NOW).priority == NotificationPriority.normal


# ---------------------------------------------------------------------------
# Daily hour gate
# ---------------------------------------------------------------------------

class TestDayEndGate:
    def test_overdue_before_23_is_gated(self):
        now = datetime(2026, 3, 10, 22, 30, tzinfo=KST)
        result = evaluate(snapshot(unit="days", last=now - timedelta(hours=30)), now, tz=KST)
        assert not result.fire
        assert result.reason == SkipReason.HOUR_GATE
        assert result.percent == 100.0

    def test_overdue_at_23_fires_high(self):
        now = datetime(2026, 3, 10, 23, 0, tzinfo=KST)
        result = evaluate(snapshot(unit="days", last=now - timedelta(hours=30)), now, tz=KST)
        assert result.fire
        assert result.priority == NotificationPriority.high
        assert result.message == "Today's activity is not done yet."

    def test_not_yet_overdue_at_23_does_not_fire(self):
        # done at 00:30 today: 22.5h of a 24h period at 23:00
        now = datetime(2026, 3, 10, 23, 0, tzinfo=KST)
        result = evaluate(snapshot(unit="days", last=now - timedelta(hours=22.5)), now, tz=KST)
        assert not result.fire
        assert result.reason == SkipReason.BELOW_THRESHOLD

    def test_gate_uses_given_timezone(self):
        # 14:00 UTC is 23:00 in Seoul, 14:00 in UTC
        now = datetime(2026, 3, 10, 23, 0, tzinfo=KST)
        activity = snapshot(unit="days", last=None)
        assert evaluate(activity, now, tz=KST).fire
        assert not evaluate(activity, now, tz=ZoneInfo("UTC")).fire

    def test_multi_day_period_uses_same_gate(self):
        now = datetime(2026, 3, 10, 23, 30, tzinfo=KST)
        result = evaluate(snapshot(unit="days", value=3, last=now - timedelta(hours=80)), now, tz=KST)
        assert result.fire


# ---------------------------------------------------------------------------
# Anomalies and injected policies
# ---------------------------------------------------------------------------

class TestAnomalies:
    NOW = datetime(2026, 3, 10, 23, 0, tzinfo=KST)

    def test_unknown_unit_never_fires(self):
        result = evaluate(snapshot(unit="fortnights", last=None), self.NOW)
        assert not result.fire
        assert result.reason == SkipReason.ANOMALY

    def test_zero_value_never_fires(self):
        result = evaluate(snapshot(unit="weeks", value=0, last=None), self.NOW)
        assert not result.fire
        assert result.reason == SkipReason.ANOMALY

    def test_unit_missing_from_injected_table(self):
        table = build_policy_table([DEFAULT_POLICY_TABLE["weeks"]])
        result = evaluate(snapshot(unit="months", last=None), self.NOW, policies=table)
        assert result.reason == SkipReason.ANOMALY


class TestInjectedPolicy:
    def test_custom_table_overrides_defaults(self):
        table = build_policy_table([
            UnitPolicy(
                unit="weeks",
                thresholds=(
                    Threshold(50, NotificationPriority.low, "Halfway there."),
                    Threshold(99, NotificationPriority.urgent, "Now or never."),
                ),
            ),
        ])
        now = datetime(2026, 3, 10, 12, 0, tzinfo=KST)
        result = evaluate(snapshot(last=now - timedelta(hours=100)), now, policies=table)
        assert result.fire
        assert result.priority == NotificationPriority.low

    def test_thresholds_sorted_on_construction(self):
        policy = UnitPolicy(
            unit="weeks",
            thresholds=(
                Threshold(10, NotificationPriority.low, "a"),
                Threshold(90, NotificationPriority.high, "b"),
                Threshold(50, NotificationPriority.normal, "c"),
            ),
        )
        assert [t.percent for t in policy.thresholds] == [90, 50, 10]

    def test_gated_top_tier_falls_through_to_lower_tier(self):
        table = build_policy_table([
            UnitPolicy(
                unit="weeks",
                thresholds=(
                    Threshold(95, NotificationPriority.high, "late", min_local_hour=23),
                    Threshold(80, NotificationPriority.normal, "soon"),
                ),
            ),
        ])
        now = datetime(2026, 3, 10, 19, 0, tzinfo=KST)
        result = evaluate(snapshot(last=None), now, policies=table, tz=KST)
        assert result.fire
        assert result.priority == NotificationPriority.normal
