"""
Timezone utilities for the sports center core.

Center schedules are local wall-clock times; everything stored is UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Optional, Tuple

import pytz

from .config import settings

if TYPE_CHECKING:
    from sportcenter.models.center import Center


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_timezone(name: Optional[str]) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone name, falling back to the configured default.

    Args:
        name: Timezone name or None

    Returns:
        pytz timezone object
    """
    try:
        return pytz.timezone(name or settings.default_timezone)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(settings.default_timezone)


def get_center_timezone(center: "Center") -> pytz.BaseTzInfo:
    return get_timezone(center.timezone)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return an aware UTC datetime.

    Naive values are assumed to already be UTC (SQLite drops tzinfo).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def localize(day: date, wall_time: time, tz: pytz.BaseTzInfo) -> datetime:
    """Build an aware datetime for a local wall-clock time on a date."""
    return tz.localize(datetime.combine(day, wall_time))


def to_local(dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return ensure_utc(dt).astimezone(tz)


def local_day_bounds_utc(day: date, tz: pytz.BaseTzInfo) -> Tuple[datetime, datetime]:
    """
    UTC bounds of a local calendar day.

    Returns:
        (start, end) where end is the start of the following local day
    """
    start = localize(day, time.min, tz)
    end = localize(day + timedelta(days=1), time.min, tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
