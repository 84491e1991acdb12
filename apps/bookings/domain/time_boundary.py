"""
Time Boundary

Converts absolute instants into the civil calendar of the booking
timezone (Asia/Manila unless configured otherwise) and back.

Reservations are stored as a local date plus local wall-clock times, so
every comparison against "now" goes through this module. Naive datetimes
are rejected: an instant without an offset has no civil date.
"""

from datetime import date, datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo

from apps.bookings.conf import get_setting
from shared.domain.value_objects import TimeRange


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def booking_timezone(tz=None) -> ZoneInfo:
    """Resolve a timezone name (or ZoneInfo) to a ZoneInfo"""
    if isinstance(tz, ZoneInfo):
        return tz
    return _zone(tz or get_setting("TIMEZONE"))


def to_local(instant: datetime, tz=None) -> datetime:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"Instant {instant!r} has no timezone offset")
    return instant.astimezone(booking_timezone(tz))


def local_date(instant: datetime, tz=None) -> date:
    return to_local(instant, tz).date()


def civil_date(instant: datetime, tz=None) -> str:
    """
    Calendar date of the instant in the booking timezone, as YYYY-MM-DD

    Examples (Asia/Manila, UTC+8):
        - 2024-06-01T15:58:00Z -> "2024-06-01" (23:58 local)
        - 2024-06-01T16:02:00Z -> "2024-06-02" (00:02 local)
    """
    return local_date(instant, tz).isoformat()


def local_time(instant: datetime, tz=None) -> time:
    return to_local(instant, tz).time()


def local_instant(day: date, wall_time: time, tz=None) -> datetime:
    """Aware instant for a local date and wall-clock time"""
    return datetime.combine(day, wall_time, tzinfo=booking_timezone(tz))


def local_range(day: date, start_time: time, end_time: time, tz=None) -> TimeRange:
    return TimeRange(local_instant(day, start_time, tz), local_instant(day, end_time, tz))


def parse_civil_date(value) -> date:
    """Accept a date or a YYYY-MM-DD string"""
    if isinstance(value, datetime):
        raise TypeError("Expected a civil date, got a datetime; use civil_date() first")
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
