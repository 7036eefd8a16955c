"""SlotGenerator: step-spaced, interval-bounded, restartable."""

from datetime import date, datetime, time, timedelta, timezone

import pytest
import pytz

from sportcenter.domain.schedule import TimeRange
from sportcenter.domain.slots import SlotGenerator

MADRID = pytz.timezone("Europe/Madrid")
DAY = date(2030, 6, 3)
EARLY = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _local_labels(generator):
    return [s.start.astimezone(MADRID).strftime("%H:%M") for s in generator]


def test_starts_are_spaced_by_step_not_duration():
    generator = SlotGenerator(DAY, [TimeRange(time(9, 0), time(11, 0))], 60, tz=MADRID, now=EARLY)

    assert _local_labels(generator) == ["09:00", "09:30", "10:00"]
    assert all(slot.duration_minutes == 60 for slot in generator)


def test_slots_never_cross_interval_end():
    ranges = [TimeRange(time(9, 0), time(10, 15)), TimeRange(time(18, 0), time(19, 0))]
    generator = SlotGenerator(DAY, ranges, 60, tz=MADRID, now=EARLY)

    assert _local_labels(generator) == ["09:00", "18:00"]


def test_short_interval_yields_nothing():
    generator = SlotGenerator(DAY, [TimeRange(time(9, 0), time(9, 45))], 60, tz=MADRID, now=EARLY)
    assert list(generator) == []


def test_generator_is_restartable():
    generator = SlotGenerator(DAY, [TimeRange(time(9, 0), time(12, 0))], 90, tz=MADRID, now=EARLY)
    assert list(generator) == list(generator)


def test_past_slots_are_tagged_not_dropped():
    now = MADRID.localize(datetime.combine(DAY, time(10, 0))).astimezone(timezone.utc)
    generator = SlotGenerator(DAY, [TimeRange(time(9, 0), time(11, 0))], 30, tz=MADRID, now=now)

    flags = [(s.start.astimezone(MADRID).strftime("%H:%M"), s.is_past) for s in generator]
    assert flags == [("09:00", True), ("09:30", True), ("10:00", False), ("10:30", False)]


def test_slots_are_utc():
    generator = SlotGenerator(DAY, [TimeRange(time(9, 0), time(10, 0))], 60, tz=MADRID, now=EARLY)
    (slot,) = list(generator)
    assert slot.start.tzinfo is not None
    assert slot.start.utcoffset() == timedelta(0)
    # Madrid is UTC+2 in June
    assert slot.start.hour == 7


@pytest.mark.parametrize("duration,step", [(0, 30), (60, 0), (-30, 30)])
def test_non_positive_values_rejected(duration, step):
    with pytest.raises(ValueError):
        SlotGenerator(DAY, [], duration, tz=MADRID, step_minutes=step)
