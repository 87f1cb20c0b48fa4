"""
Datetime utilities for consistent clinic-local time handling.

All scheduling runs in a single clinic-local timezone, a fixed UTC offset
configured by CLINIC_UTC_OFFSET_MINUTES. Dates are calendar dates and slot
times are wall-clock "HH:MM" strings; nothing here is DST-aware.
"""

import logging
import re
from datetime import datetime, timezone, timedelta, date
from typing import Optional, Union

from dental_booking.core.config import CLINIC_UTC_OFFSET_MINUTES
from dental_booking.core.constants import WEEKDAY_NAMES

logger = logging.getLogger(__name__)

CLINIC_TZ = timezone(timedelta(minutes=CLINIC_UTC_OFFSET_MINUTES))

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(
    r"^\s*(?P<hour>\d{1,2})(?::(?P<minute>\d{1,2}))?(?::\d{1,2}(?:\.\d+)?)?\s*(?P<meridiem>[AaPp][Mm])?\s*$"
)


def clinic_now() -> datetime:
    """
    Get the current clinic-local datetime.

    Returns:
        Current datetime with the clinic timezone attached
    """
    return datetime.now(CLINIC_TZ)


def ensure_clinic_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Naive datetimes are assumed to already be clinic wall-clock time.

    Args:
        dt: Datetime to localize or convert

    Returns:
        Timezone-aware datetime in the clinic timezone, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=CLINIC_TZ)
    return dt.astimezone(CLINIC_TZ)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Single-digit months/days are accepted ("2025-7-4"). A trailing time part
    ("2025-07-24T00:00:00Z") is ignored; only the calendar date is kept.

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()
    if "T" in date_str:
        date_str = date_str.split("T", 1)[0]
    elif " " in date_str:
        date_str = date_str.split(" ", 1)[0]

    separator = "/" if "/" in date_str else "-"
    parts = date_str.split(separator)
    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid date: {date_str}") from e


def coerce_date(value: Union[str, date, datetime]) -> date:
    """
    Reduce a date-like value to its calendar date.

    Datetimes keep their own wall-clock date (no timezone conversion), so a
    stored "2025-07-24T00:00:00Z" is still the 24th.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date_string(value)
    raise ValueError(f"Unsupported date value: {value!r}")


def time_to_minutes(value: str) -> int:
    """
    Convert a time-of-day string to minutes since midnight.

    Accepts "9:00", "09:00", "09:00:00" and 12-hour forms like "9:30 AM".
    "24:00" is accepted as the end-of-day boundary (1440).

    Raises:
        ValueError: If the string is not a valid time of day
    """
    if not isinstance(value, str):
        raise ValueError(f"Time must be a string, got {type(value).__name__}")

    match = _TIME_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid time format: {value!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    meridiem = match.group("meridiem")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: {value!r}")
        hour = hour % 12
        if meridiem.lower() == "pm":
            hour += 12

    if minute > 59:
        raise ValueError(f"Invalid minute in time: {value!r}")

    total = hour * 60 + minute
    if total > MINUTES_PER_DAY:
        raise ValueError(f"Time out of range: {value!r}")
    return total


def minutes_to_time(minutes: int) -> str:
    """Format minutes since midnight as a zero-padded "HH:MM" string."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time_string(value: str) -> str:
    """
    Normalize a stored time into canonical "HH:MM".

    Seconds are dropped and hour/minute are zero-padded, so "9:00",
    "09:00:00" and "9:00 AM" all become "09:00".
    """
    return minutes_to_time(time_to_minutes(value))


def weekday_name(target_date: date) -> str:
    """Get the English weekday name ("Sunday".."Saturday") for a date."""
    # date.weekday(): 0=Monday .. 6=Sunday; WEEKDAY_NAMES starts at Sunday
    return WEEKDAY_NAMES[(target_date.weekday() + 1) % 7]


def format_date(target_date: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return target_date.isoformat()
