"""
Weekday recurrence codes and due-window matching for quest reminders
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional
import re

from .schemas import Reminder
from .timezone import LocalTime


class DayCode(Enum):
    """Recurrence codes keyed by the weekday abbreviations the client stores"""
    SUNDAY = ("Sun", "SU")
    MONDAY = ("Mon", "MO")
    TUESDAY = ("Tue", "TU")
    WEDNESDAY = ("Wed", "WE")
    THURSDAY = ("Thu", "TH")
    FRIDAY = ("Fri", "FR")
    SATURDAY = ("Sat", "SA")

    def __init__(self, abbreviation: str, code: str):
        self.abbreviation = abbreviation
        self.code = code

    @classmethod
    def from_abbreviation(cls, value: str) -> Optional["DayCode"]:
        for day in cls:
            if day.abbreviation == value:
                return day
        return None


_TIME_24 = re.compile(r"([0-9]{2}):([0-9]{2})")


@dataclass(frozen=True)
class TimeOfDay:
    hour: int
    minute: int

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


def parse_time_24(value: Optional[str]) -> Optional[TimeOfDay]:
    """Parse a strict ``HH:MM`` 24h time; anything else yields None."""
    m = _TIME_24.fullmatch(str(value or ""))
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return TimeOfDay(hour=hour, minute=minute)


def parse_reminder_days(value: Optional[str]) -> FrozenSet[DayCode]:
    """Comma-separated abbreviations to day codes; unknown tokens are dropped."""
    days = set()
    for token in str(value or "").split(","):
        day = DayCode.from_abbreviation(token.strip())
        if day is not None:
            days.add(day)
    return frozenset(days)


def should_send_now(reminder: Reminder, now_local: LocalTime, window_minutes: int) -> bool:
    """True when ``now_local`` lies in ``[reminderTime, reminderTime + window)`` on an allowed day."""
    if not reminder.reminder_on:
        return False
    scheduled = parse_time_24(reminder.reminder_time)
    if scheduled is None:
        return False
    days = parse_reminder_days(reminder.reminder_days)
    today = DayCode.from_abbreviation(now_local.weekday) or DayCode.SUNDAY
    if days and today not in days:
        return False
    lag = now_local.minute_of_day - scheduled.minute_of_day
    return 0 <= lag < window_minutes


def filter_due(reminders: Iterable[Reminder], now_local: LocalTime, window_minutes: int) -> List[Reminder]:
    return [r for r in reminders if should_send_now(r, now_local, window_minutes)]
