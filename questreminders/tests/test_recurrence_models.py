"""Tests for weekday codes, time parsing and due-window matching."""

from __future__ import annotations

import pytest

from questreminders.recurrence_models import (
    DayCode,
    TimeOfDay,
    filter_due,
    parse_reminder_days,
    parse_time_24,
    should_send_now,
)
from questreminders.schemas import Reminder
from questreminders.timezone import LocalTime
from questreminders.tests.conftest import quest


def at(hour: int, minute: int, weekday: str = "Mon") -> LocalTime:
    return LocalTime(year=2026, month=3, day=2, hour=hour, minute=minute, weekday=weekday)


def reminder(**kwargs) -> Reminder:
    return Reminder.model_validate(quest(**kwargs))


class TestDayCode:
    def test_seven_entries(self) -> None:
        assert len(DayCode) == 7

    @pytest.mark.parametrize(
        "abbr,code",
        [("Sun", "SU"), ("Mon", "MO"), ("Tue", "TU"), ("Wed", "WE"), ("Thu", "TH"), ("Fri", "FR"), ("Sat", "SA")],
    )
    def test_mapping(self, abbr: str, code: str) -> None:
        assert DayCode.from_abbreviation(abbr).code == code

    def test_unknown_abbreviation(self) -> None:
        assert DayCode.from_abbreviation("Monday") is None


class TestParseTime24:
    def test_valid(self) -> None:
        assert parse_time_24("08:05") == TimeOfDay(8, 5)
        assert parse_time_24("23:59") == TimeOfDay(23, 59)
        assert parse_time_24("00:00") == TimeOfDay(0, 0)

    @pytest.mark.parametrize("value", ["9:30", "25:00", "12:60", "", None, "08:00:00", "ab:cd", "08:00\n", " 08:00"])
    def test_invalid(self, value) -> None:
        assert parse_time_24(value) is None


class TestParseReminderDays:
    def test_trims_and_drops_unknown(self) -> None:
        assert parse_reminder_days(" Mon , Wed,Funday,") == {DayCode.MONDAY, DayCode.WEDNESDAY}

    def test_empty(self) -> None:
        assert parse_reminder_days("") == frozenset()
        assert parse_reminder_days(None) == frozenset()


class TestShouldSendNow:
    def test_disabled_never_due(self) -> None:
        assert not should_send_now(reminder(time="08:00", on=False), at(8, 0), 5)

    def test_truthy_non_boolean_flag_is_not_enabled(self) -> None:
        assert not should_send_now(reminder(time="08:00", on="true"), at(8, 0), 5)

    @pytest.mark.parametrize("value", ["9:30", "25:00", ""])
    def test_malformed_time_never_due(self, value: str) -> None:
        assert not should_send_now(reminder(time=value), at(9, 30), 5)

    @pytest.mark.parametrize("hour,minute,expected", [(8, 0, True), (8, 4, True), (8, 5, False), (7, 59, False)])
    def test_window(self, hour: int, minute: int, expected: bool) -> None:
        assert should_send_now(reminder(time="08:00"), at(hour, minute), 5) is expected

    @pytest.mark.parametrize("weekday", ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"])
    def test_empty_days_means_every_day(self, weekday: str) -> None:
        assert should_send_now(reminder(time="08:00", days=""), at(8, 0, weekday), 5)

    def test_weekday_filter_excludes_other_days(self) -> None:
        assert not should_send_now(reminder(time="08:00", days="Mon,Wed"), at(8, 0, "Tue"), 5)
        assert should_send_now(reminder(time="08:00", days="Mon,Wed"), at(8, 0, "Wed"), 5)

    def test_only_unknown_days_means_every_day(self) -> None:
        assert should_send_now(reminder(time="08:00", days="Someday"), at(8, 0, "Thu"), 5)

    def test_days_as_list(self) -> None:
        assert should_send_now(reminder(time="08:00", days=["Sat", "Sun"]), at(8, 1, "Sun"), 5)
        assert not should_send_now(reminder(time="08:00", days=["Sat", "Sun"]), at(8, 1, "Fri"), 5)

    def test_no_wrap_across_midnight(self) -> None:
        assert not should_send_now(reminder(time="23:58"), at(0, 1), 5)


class TestFilterDue:
    def test_keeps_order(self) -> None:
        reminders = [reminder(title="A"), reminder(title="B", time="15:00"), reminder(title="C")]
        assert [r.title for r in filter_due(reminders, at(14, 2), 5)] == ["A", "C"]
