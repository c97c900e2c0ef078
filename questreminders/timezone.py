from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class LocalTime:
    """Civil calendar fields of an instant in a user's timezone"""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    weekday: str  # Sun..Sat

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


def get_zoneinfo(tz_name: Any) -> tzinfo:
    """Resolve an IANA timezone name, falling back to UTC for anything unusable."""
    if not isinstance(tz_name, str) or not tz_name:
        return dt_timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return dt_timezone.utc


def to_utc_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def local_parts(now: datetime, tz_name: Any) -> LocalTime:
    """Render ``now`` in ``tz_name`` (UTC when unknown), honoring DST at that instant."""
    local = to_utc_aware(now).astimezone(get_zoneinfo(tz_name))
    return LocalTime(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        weekday=WEEKDAY_NAMES[local.weekday()],
    )
