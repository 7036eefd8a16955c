"""
Candidate slot generation.

Slots start every ``step_minutes`` inside each open interval and last the
requested duration, so candidates overlap whenever the duration exceeds the
step. Filtering by availability happens later in the conflict resolver.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Sequence

import pytz

from sportcenter.core.timezone_utils import ensure_utc, localize, utc_now
from sportcenter.domain.schedule import TimeRange


@dataclass(frozen=True)
class CandidateSlot:
    """A candidate [start, end) in UTC; ``is_past`` when start < now."""

    start: datetime
    end: datetime
    is_past: bool = False

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class SlotGenerator:
    """
    Lazy, finite, restartable sequence of candidate slots.

    Every ``iter()`` walks the intervals again from the beginning. Arithmetic
    runs in UTC so DST changes inside an interval shift wall-clock labels,
    never slot lengths.
    """

    def __init__(
        self,
        day: date,
        ranges: Sequence[TimeRange],
        duration_minutes: int,
        *,
        tz: pytz.BaseTzInfo,
        step_minutes: int = 30,
        now: Optional[datetime] = None,
    ):
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        if step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        self.day = day
        self.ranges = tuple(ranges)
        self.duration = timedelta(minutes=duration_minutes)
        self.step = timedelta(minutes=step_minutes)
        self.tz = tz
        self.now = ensure_utc(now) if now is not None else utc_now()

    def __iter__(self) -> Iterator[CandidateSlot]:
        for interval in self.ranges:
            start = localize(self.day, interval.start, self.tz).astimezone(timezone.utc)
            end = localize(self.day, interval.end, self.tz).astimezone(timezone.utc)
            current = start
            while current + self.duration <= end:
                yield CandidateSlot(
                    start=current,
                    end=current + self.duration,
                    is_past=current < self.now,
                )
                current += self.step

    def __repr__(self) -> str:
        labels = ",".join(r.label() for r in self.ranges)
        return f"<SlotGenerator {self.day} [{labels}] duration={self.duration} step={self.step}>"
