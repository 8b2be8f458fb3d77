"""
Tests for scheduling/rules.py

Weekly rules resolved to UTC windows, including daylight-saving days.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest

from slotbook.scheduling.interval import Interval
from slotbook.scheduling.rules import (
    WeeklyRule,
    day_of_week,
    local_date_of,
    parse_local_time,
    resolve_windows,
)

UTC = timezone.utc

MONDAY = date(2025, 1, 20)


def utc(year, month, day, hour, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


class TestDayOfWeek:

    def test_sunday_is_zero(self):
        assert day_of_week(date(2025, 1, 19)) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week(date(2025, 1, 25)) == 6


class TestParseLocalTime:

    def test_accepts_strings_and_timedeltas(self):
        assert parse_local_time("09:00") == time(9, 0)
        assert parse_local_time("17:30:15") == time(17, 30, 15)
        assert parse_local_time(timedelta(hours=8, minutes=45)) == time(8, 45)
        assert parse_local_time(time(7)) == time(7)

    @pytest.mark.parametrize("value", ["9am", "09", "25:00", "09:00:00:00", ""])
    def test_rejects_malformed_strings(self, value):
        with pytest.raises(ValueError):
            parse_local_time(value)


class TestResolveWindows:

    def test_single_rule_in_utc(self):
        rules = [WeeklyRule(1, time(9), time(17))]
        assert resolve_windows(rules, MONDAY, "UTC") == [
            Interval(utc(2025, 1, 20, 9), utc(2025, 1, 20, 17))
        ]

    def test_no_rule_for_the_day(self):
        rules = [WeeklyRule(2, time(9), time(17))]
        assert resolve_windows(rules, MONDAY, "UTC") == []

    def test_split_day_gives_two_windows_in_order(self):
        rules = [
            WeeklyRule(1, time(14), time(17)),
            WeeklyRule(1, time(9), time(12)),
        ]
        windows = resolve_windows(rules, MONDAY, "UTC")
        assert windows == [
            Interval(utc(2025, 1, 20, 9), utc(2025, 1, 20, 12)),
            Interval(utc(2025, 1, 20, 14), utc(2025, 1, 20, 17)),
        ]

    def test_winter_offset(self):
        rules = [WeeklyRule(1, time(9), time(17))]
        assert resolve_windows(rules, MONDAY, "America/New_York") == [
            Interval(utc(2025, 1, 20, 14), utc(2025, 1, 20, 22))
        ]

    def test_spring_forward_day_uses_that_days_offset(self):
        """Sunday 2025-03-09 in New York is already on EDT by 09:00"""
        rules = [WeeklyRule(0, time(9), time(17))]
        assert resolve_windows(rules, date(2025, 3, 9), "America/New_York") == [
            Interval(utc(2025, 3, 9, 13), utc(2025, 3, 9, 21))
        ]

    def test_fall_back_day(self):
        """Sunday 2025-11-02 in New York is on EST by 09:00"""
        rules = [WeeklyRule(0, time(9), time(17))]
        assert resolve_windows(rules, date(2025, 11, 2), "America/New_York") == [
            Interval(utc(2025, 11, 2, 14), utc(2025, 11, 2, 22))
        ]

    def test_window_across_the_spring_gap_is_one_hour_shorter(self):
        rules = [WeeklyRule(0, time(1), time(4))]
        windows = resolve_windows(rules, date(2025, 3, 9), "America/New_York")
        assert len(windows) == 1
        assert windows[0].duration == timedelta(hours=2)

    def test_start_inside_the_gap_moves_forward(self):
        """02:30 does not exist on 2025-03-09; it is read as 03:30 EDT"""
        rules = [WeeklyRule(0, time(2, 30), time(5))]
        windows = resolve_windows(rules, date(2025, 3, 9), "America/New_York")
        assert windows == [Interval(utc(2025, 3, 9, 7, 30), utc(2025, 3, 9, 9))]

    def test_unknown_timezone_falls_back_to_utc(self):
        rules = [WeeklyRule(1, time(9), time(17))]
        assert resolve_windows(rules, MONDAY, "Mars/Olympus_Mons") == [
            Interval(utc(2025, 1, 20, 9), utc(2025, 1, 20, 17))
        ]

    def test_local_date_of(self):
        late_evening_ny = utc(2025, 1, 21, 3)
        assert local_date_of(late_evening_ny, "America/New_York") == MONDAY
        assert local_date_of(late_evening_ny, "UTC") == date(2025, 1, 21)
