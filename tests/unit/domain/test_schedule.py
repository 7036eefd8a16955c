"""ScheduleResolver: one authoritative source per date, never merged."""

from datetime import date, time

import pytest

from sportcenter.domain.schedule import (
    ClosedDay,
    OpenDay,
    ScheduleResolver,
    TimeRange,
    coalesce,
    parse_time,
    resolve_open_ranges,
    validate_schedule_settings,
)

CHRISTMAS = date(2025, 12, 25)  # Thursday

WEEKLY = {
    "schedule_slots": {
        "thursday": {"closed": False, "slots": [{"start": "09:00", "end": "14:00"}, {"start": "16:00", "end": "21:00"}]},
        "sunday": {"closed": True, "slots": []},
    },
    "operatingHours": {
        "thursday": {"open": "07:00", "close": "23:00"},
        "friday": {"open": "10:00", "close": "20:00"},
        "sunday": {"open": "10:00", "close": "14:00"},
    },
}


def _labels(ranges):
    return [r.label() for r in ranges]


def test_closed_exception_overrides_weekly_schedule():
    settings = {**WEEKLY, "exceptions": [{"date": "2025-12-25", "closed": True, "reason": "Navidad"}]}

    assert resolve_open_ranges(settings, CHRISTMAS) == []
    source, rule = ScheduleResolver.from_settings(settings).rule_for(CHRISTMAS)
    assert source == "exception"
    assert rule == ClosedDay(reason="Navidad")


def test_exception_ranges_replace_weekly_slots():
    settings = {
        **WEEKLY,
        "exceptions": {"2025-12-25": {"ranges": [{"start": "10:00", "end": "13:00"}]}},
    }

    assert _labels(resolve_open_ranges(settings, CHRISTMAS)) == ["10:00-13:00"]


def test_exception_single_start_end_pair_is_accepted():
    settings = {"exceptions": [{"date": "2025-12-25", "start": "11:00", "end": "12:30"}]}

    assert _labels(resolve_open_ranges(settings, CHRISTMAS)) == ["11:00-12:30"]


def test_weekly_slots_win_over_legacy_hours():
    assert _labels(resolve_open_ranges(WEEKLY, CHRISTMAS)) == ["09:00-14:00", "16:00-21:00"]


def test_weekly_closed_day_is_authoritative_even_with_legacy_hours():
    sunday = date(2025, 12, 28)
    assert resolve_open_ranges(WEEKLY, sunday) == []


def test_legacy_hours_used_when_no_weekly_slots():
    friday = date(2025, 12, 26)
    assert _labels(resolve_open_ranges(WEEKLY, friday)) == ["10:00-20:00"]


def test_open_weekly_day_without_slots_defers_to_legacy():
    settings = {
        "schedule_slots": {"friday": {"closed": False, "slots": []}},
        "operatingHours": {"friday": {"open": "10:00", "close": "20:00"}},
    }
    assert _labels(resolve_open_ranges(settings, date(2025, 12, 26))) == ["10:00-20:00"]


def test_unconfigured_day_is_closed():
    saturday = date(2025, 12, 27)
    assert resolve_open_ranges(WEEKLY, saturday) == []
    assert resolve_open_ranges({}, saturday) == []
    assert resolve_open_ranges(None, saturday) == []


def test_invalid_ranges_are_dropped():
    settings = {
        "schedule_slots": {
            "thursday": {
                "slots": [
                    {"start": "9:00", "end": "12:00"},
                    {"start": "25:00", "end": "26:00"},
                    {"start": "18:00", "end": "17:00"},
                ]
            }
        }
    }
    assert _labels(resolve_open_ranges(settings, CHRISTMAS)) == ["09:00-12:00"]


def test_invalid_exception_date_is_ignored():
    settings = {**WEEKLY, "exceptions": [{"date": "25/12/2025", "closed": True}]}
    assert _labels(resolve_open_ranges(settings, CHRISTMAS)) == ["09:00-14:00", "16:00-21:00"]


def test_overlapping_ranges_are_coalesced_but_touching_ones_are_not():
    ranges = [
        TimeRange(time(12, 0), time(14, 0)),
        TimeRange(time(9, 0), time(12, 0)),
        TimeRange(time(13, 0), time(15, 0)),
    ]
    assert _labels(coalesce(ranges)) == ["09:00-12:00", "12:00-15:00"]


def test_is_open_for_requires_one_containing_interval():
    resolver = ScheduleResolver.from_settings(WEEKLY)
    assert resolver.is_open_for(CHRISTMAS, time(9, 0), time(10, 0))
    assert resolver.is_open_for(CHRISTMAS, time(13, 0), time(14, 0))
    assert not resolver.is_open_for(CHRISTMAS, time(13, 30), time(14, 30))
    assert not resolver.is_open_for(CHRISTMAS, time(14, 0), time(16, 0))


@pytest.mark.parametrize(
    "value,expected",
    [("08:30", time(8, 30)), ("8:05", time(8, 5)), ("23:59", time(23, 59)), ("24:00", None), ("8h", None), (None, None)],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


def test_time_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        TimeRange(time(10, 0), time(9, 0))


def test_open_day_rule_carries_sorted_ranges():
    settings = {"schedule_slots": {"thursday": {"slots": [{"start": "16:00", "end": "18:00"}, {"start": "08:00", "end": "10:00"}]}}}
    _, rule = ScheduleResolver.from_settings(settings).rule_for(CHRISTMAS)
    assert isinstance(rule, OpenDay)
    assert _labels(rule.ranges) == ["08:00-10:00", "16:00-18:00"]


def test_validate_schedule_settings_reports_problems():
    settings = {
        "schedule_slots": {
            "monday": {"slots": [{"start": f"{h:02d}:00", "end": f"{h:02d}:30"} for h in range(8, 13)]},
            "funday": {"slots": []},
            "tuesday": {"slots": [{"start": "12:00", "end": "11:00"}, {"start": "xx", "end": "11:00"}]},
        },
        "exceptions": [{"date": "not-a-date", "closed": True}],
    }

    errors = validate_schedule_settings(settings)

    assert any("monday" in e and "maximum 4" in e for e in errors)
    assert any("funday" in e for e in errors)
    assert any("tuesday" in e and "start must be before end" in e for e in errors)
    assert any("tuesday" in e and "HH:MM" in e for e in errors)
    assert any("invalid date" in e for e in errors)


def test_validate_schedule_settings_accepts_valid_config():
    assert validate_schedule_settings(WEEKLY) == []
