# tests/helpers.py
"""Shared test helpers: fixed dates, local-time conversion and auth headers."""

from datetime import date, datetime, time, timezone
from typing import Dict

import pytz

from sportcenter.models import User

MADRID = pytz.timezone("Europe/Madrid")

# A Monday well in the future so nothing is ever PAST in route tests
FUTURE_DAY = date(2030, 6, 3)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

OPEN_EVERY_DAY = {
    "schedule_slots": {
        day: {"closed": False, "slots": [{"start": "08:00", "end": "22:00"}]} for day in WEEKDAYS
    }
}


def local_dt(day: date, hhmm: str, tz: pytz.BaseTzInfo = MADRID) -> datetime:
    """A local wall-clock time on ``day`` as an aware UTC datetime."""
    hour, minute = (int(part) for part in hhmm.split(":"))
    return tz.localize(datetime.combine(day, time(hour, minute))).astimezone(timezone.utc)


def auth(user: User) -> Dict[str, str]:
    return {"X-User-Id": user.id}
