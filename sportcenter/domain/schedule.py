# sportcenter/domain/schedule.py
"""
Operating-hours resolution for a center.

A center's ``settings`` blob carries up to three historical formats:

- ``exceptions``: date-specific overrides, either a list of
  ``{date, closed, ranges: [{start, end}], start, end, reason}`` objects or a
  mapping keyed by ISO date.
- ``schedule_slots``: per weekday ``{closed, slots: [{start, end}]}``.
- ``operatingHours``: legacy per weekday ``{open, close, closed}``.

The blob is parsed once into a typed :class:`CenterScheduleConfig` whose day
rules are either :class:`ClosedDay` or :class:`OpenDay`. Resolution for a
date then picks exactly one authoritative source, in this order:

1. an exception for the exact date
2. the weekly slot list for the weekday
3. the legacy open/close pair for the weekday
4. otherwise closed

Sources are never merged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DAY_NAMES: Tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
MAX_RANGES_PER_DAY = 4

_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


@dataclass(frozen=True, order=True)
class TimeRange:
    """Local wall-clock interval [start, end) within one day."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Range start {self.start} must be before end {self.end}")

    @property
    def minutes(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)

    def contains(self, start: time, end: time) -> bool:
        return self.start <= start and end <= self.end

    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True)
class ClosedDay:
    reason: Optional[str] = None


@dataclass(frozen=True)
class OpenDay:
    ranges: Tuple[TimeRange, ...]


DayRule = Union[ClosedDay, OpenDay]


def parse_time(value: Any) -> Optional[time]:
    """Parse ``H:MM``/``HH:MM``; anything else returns None."""
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def parse_range(start: Any, end: Any) -> Optional[TimeRange]:
    start_time = parse_time(start)
    end_time = parse_time(end)
    if start_time is None or end_time is None or start_time >= end_time:
        return None
    return TimeRange(start_time, end_time)


def coalesce(ranges: Iterable[TimeRange]) -> Tuple[TimeRange, ...]:
    """
    Sort ranges and merge the ones that overlap.

    Ranges that merely touch (one ends where the next starts) stay separate.
    """
    merged: List[TimeRange] = []
    for current in sorted(ranges):
        if merged and current.start < merged[-1].end:
            last = merged.pop()
            current = TimeRange(last.start, max(last.end, current.end))
        merged.append(current)
    return tuple(merged)


def _parse_range_list(raw: Any, context: str) -> Tuple[Tuple[TimeRange, ...], int]:
    """Parse a list of {start, end}; returns (valid ranges, raw item count)."""
    if not isinstance(raw, list):
        return (), 0
    valid: List[TimeRange] = []
    for item in raw:
        parsed = parse_range(item.get("start"), item.get("end")) if isinstance(item, Mapping) else None
        if parsed is None:
            logger.warning("Dropping invalid time range %r in %s", item, context)
            continue
        valid.append(parsed)
    return coalesce(valid), len(raw)


def _parse_weekly_day(raw: Any, day_name: str) -> Optional[DayRule]:
    if not isinstance(raw, Mapping):
        return None
    if raw.get("closed") is True:
        return ClosedDay()
    ranges, raw_count = _parse_range_list(raw.get("slots"), f"schedule_slots.{day_name}")
    if raw_count == 0:
        # An open day without slots defers to the legacy hours
        return None
    return OpenDay(ranges)


def _parse_legacy_day(raw: Any, day_name: str) -> Optional[DayRule]:
    if not isinstance(raw, Mapping):
        return None
    if raw.get("closed") is True:
        return ClosedDay()
    if not raw.get("open") or not raw.get("close"):
        return None
    parsed = parse_range(raw.get("open"), raw.get("close"))
    if parsed is None:
        logger.warning("Ignoring invalid legacy hours %r for %s", raw, day_name)
        return None
    return OpenDay((parsed,))


def _parse_exception(raw: Any, context: str) -> Optional[DayRule]:
    if not isinstance(raw, Mapping):
        return None
    if raw.get("closed") is True:
        return ClosedDay(reason=raw.get("reason"))

    items = raw.get("ranges")
    if items is None and raw.get("start") and raw.get("end"):
        items = [{"start": raw.get("start"), "end": raw.get("end")}]
    ranges, raw_count = _parse_range_list(items, context)
    if raw_count == 0:
        return None
    return OpenDay(ranges)


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        # Accept full ISO timestamps by keeping the date part
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _iter_exception_items(raw: Any) -> Iterable[Tuple[Any, Any]]:
    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, list):
        return [(item.get("date") if isinstance(item, Mapping) else None, item) for item in raw]
    return []


@dataclass(frozen=True)
class CenterScheduleConfig:
    """Typed view of a center's schedule settings."""

    exceptions: Mapping[date, DayRule] = field(default_factory=dict)
    weekly: Mapping[int, DayRule] = field(default_factory=dict)
    legacy: Mapping[int, DayRule] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> "CenterScheduleConfig":
        settings = settings or {}

        exceptions: dict[date, DayRule] = {}
        for raw_date, raw in _iter_exception_items(settings.get("exceptions")):
            parsed_date = _parse_date(raw_date)
            if parsed_date is None:
                logger.warning("Ignoring schedule exception with invalid date %r", raw_date)
                continue
            rule = _parse_exception(raw, f"exceptions.{parsed_date.isoformat()}")
            if rule is not None:
                exceptions[parsed_date] = rule

        weekly: dict[int, DayRule] = {}
        legacy: dict[int, DayRule] = {}
        slots_cfg = settings.get("schedule_slots") or {}
        legacy_cfg = settings.get("operatingHours") or {}
        for weekday, day_name in enumerate(DAY_NAMES):
            if isinstance(slots_cfg, Mapping):
                weekly_rule = _parse_weekly_day(slots_cfg.get(day_name), day_name)
                if weekly_rule is not None:
                    weekly[weekday] = weekly_rule
            if isinstance(legacy_cfg, Mapping):
                legacy_rule = _parse_legacy_day(legacy_cfg.get(day_name), day_name)
                if legacy_rule is not None:
                    legacy[weekday] = legacy_rule

        return cls(exceptions=exceptions, weekly=weekly, legacy=legacy)


class ScheduleResolver:
    """Resolve the open intervals of a center for a calendar date."""

    def __init__(self, config: CenterScheduleConfig):
        self.config = config

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> "ScheduleResolver":
        return cls(CenterScheduleConfig.from_settings(settings))

    def rule_for(self, day: date) -> Tuple[str, Optional[DayRule]]:
        """Return the authoritative source name and its rule (None when unconfigured)."""
        if day in self.config.exceptions:
            return "exception", self.config.exceptions[day]
        weekday = day.weekday()
        if weekday in self.config.weekly:
            return "schedule_slots", self.config.weekly[weekday]
        if weekday in self.config.legacy:
            return "operatingHours", self.config.legacy[weekday]
        return "none", None

    def resolve(self, day: date) -> List[TimeRange]:
        """
        Open intervals for ``day`` as an ordered, disjoint list.

        Empty means closed, including when nothing is configured.
        """
        source, rule = self.rule_for(day)
        if isinstance(rule, OpenDay):
            logger.debug("Schedule for %s resolved from %s", day, source)
            return list(rule.ranges)
        if isinstance(rule, ClosedDay):
            logger.debug("Center closed on %s (%s)", day, source)
        return []

    def is_open_for(self, day: date, start: time, end: time) -> bool:
        """True when [start, end) fits entirely inside one open interval."""
        return any(interval.contains(start, end) for interval in self.resolve(day))


def resolve_open_ranges(settings: Optional[Mapping[str, Any]], day: date) -> List[TimeRange]:
    return ScheduleResolver.from_settings(settings).resolve(day)


def _validate_range_items(items: Any, context: str, errors: List[str]) -> None:
    if not isinstance(items, list):
        errors.append(f"{context}: ranges must be a list")
        return
    if len(items) > MAX_RANGES_PER_DAY:
        errors.append(f"{context}: maximum {MAX_RANGES_PER_DAY} ranges per day")
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            errors.append(f"{context}[{index}]: range must be an object with start and end")
            continue
        start = parse_time(item.get("start"))
        end = parse_time(item.get("end"))
        if start is None or end is None:
            errors.append(f"{context}[{index}]: invalid time format (HH:MM)")
        elif start >= end:
            errors.append(f"{context}[{index}]: start must be before end")


def validate_schedule_settings(settings: Optional[Mapping[str, Any]]) -> List[str]:
    """
    Check a center's schedule settings and return human-readable errors.

    An empty list means the settings are valid.
    """
    errors: List[str] = []
    settings = settings or {}

    slots_cfg = settings.get("schedule_slots")
    if slots_cfg is not None:
        if not isinstance(slots_cfg, Mapping):
            errors.append("schedule_slots: must be an object keyed by weekday")
        else:
            for day_name, day_cfg in slots_cfg.items():
                if day_name not in DAY_NAMES:
                    errors.append(f"schedule_slots.{day_name}: unknown weekday")
                    continue
                if not isinstance(day_cfg, Mapping):
                    errors.append(f"schedule_slots.{day_name}: must be an object")
                    continue
                if "closed" in day_cfg and not isinstance(day_cfg["closed"], bool):
                    errors.append(f"schedule_slots.{day_name}.closed: must be a boolean")
                _validate_range_items(day_cfg.get("slots", []), f"schedule_slots.{day_name}.slots", errors)

    legacy_cfg = settings.get("operatingHours")
    if isinstance(legacy_cfg, Mapping):
        for day_name, day_cfg in legacy_cfg.items():
            if not isinstance(day_cfg, Mapping) or day_cfg.get("closed") is True:
                continue
            if day_cfg.get("open") or day_cfg.get("close"):
                if parse_range(day_cfg.get("open"), day_cfg.get("close")) is None:
                    errors.append(f"operatingHours.{day_name}: invalid open/close pair")

    for raw_date, raw in _iter_exception_items(settings.get("exceptions")):
        parsed_date = _parse_date(raw_date)
        context = f"exceptions.{raw_date}"
        if parsed_date is None:
            errors.append(f"{context}: invalid date (YYYY-MM-DD)")
            continue
        if not isinstance(raw, Mapping) or raw.get("closed") is True:
            continue
        if "ranges" in raw:
            _validate_range_items(raw["ranges"], f"{context}.ranges", errors)
        elif raw.get("start") or raw.get("end"):
            if parse_range(raw.get("start"), raw.get("end")) is None:
                errors.append(f"{context}: invalid start/end pair")

    return errors
