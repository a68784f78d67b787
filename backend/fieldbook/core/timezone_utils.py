"""
Timezone utilities for Fieldbook.

Every facility runs on a fixed UTC offset; these helpers convert stored UTC
timestamps to and from facility-local time without consulting the host zone.
"""

from datetime import date, datetime, time
from typing import Optional

import pytz


def get_facility_timezone(utc_offset_minutes: int) -> pytz.tzinfo.BaseTzInfo:
    """
    Get the fixed-offset timezone for a facility.

    Args:
        utc_offset_minutes: Offset east of UTC in minutes (420 for UTC+7)

    Returns:
        pytz fixed offset timezone
    """
    if utc_offset_minutes == 0:
        return pytz.UTC
    return pytz.FixedOffset(utc_offset_minutes)


def as_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def to_facility_time(dt: datetime, utc_offset_minutes: int) -> datetime:
    """
    Convert a datetime to facility-local time.

    Args:
        dt: Datetime to convert (naive values are taken as UTC)
        utc_offset_minutes: Facility offset

    Returns:
        Datetime in the facility's fixed offset
    """
    return as_utc(dt).astimezone(get_facility_timezone(utc_offset_minutes))


def facility_time_of_day(dt: datetime, utc_offset_minutes: int) -> time:
    return to_facility_time(dt, utc_offset_minutes).time().replace(tzinfo=None)


def combine_facility_datetime(day: date, at: time, utc_offset_minutes: int) -> datetime:
    """Build an aware datetime for a facility-local date and wall-clock time."""
    tz = get_facility_timezone(utc_offset_minutes)
    return tz.localize(datetime.combine(day, at.replace(tzinfo=None)))


def format_time_range(
    start: datetime, end: datetime, utc_offset_minutes: int, fmt: Optional[str] = None
) -> str:
    """
    Format a window as facility-local text, e.g. ``08:00 - 09:30, 21/10/2026``.
    """
    local_start = to_facility_time(start, utc_offset_minutes)
    local_end = to_facility_time(end, utc_offset_minutes)
    if fmt:
        return f"{local_start.strftime(fmt)} - {local_end.strftime(fmt)}"
    return (
        f"{local_start.strftime('%H:%M')} - {local_end.strftime('%H:%M')}, "
        f"{local_start.strftime('%d/%m/%Y')}"
    )
