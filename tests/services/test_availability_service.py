# tests/services/test_availability_service.py
from datetime import datetime, timedelta, timezone

import pytest

from sportcenter.core.exceptions import NotFoundException, ValidationException
from sportcenter.services.availability_service import AvailabilityService
from tests.helpers import FUTURE_DAY, OPEN_EVERY_DAY, local_dt

EARLY = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(db):
    return AvailabilityService(db)


def statuses_by_label(result):
    from tests.helpers import MADRID

    return {slot["start"].astimezone(MADRID).strftime("%H:%M"): slot["status"] for slot in result["slots"]}


class TestGetAvailability:
    def test_open_day(self, service, make_court):
        court = make_court()

        result = service.get_availability(court.id, FUTURE_DAY, 60, now=EARLY)

        assert result["timezone"] == "Europe/Madrid"
        assert result["sport"] == "Fútbol"
        assert result["open_ranges"] == [{"start": "08:00", "end": "22:00"}]
        assert len(result["slots"]) == 27
        assert result["slots"][0]["start"] == local_dt(FUTURE_DAY, "08:00")
        assert result["slots"][-1]["end"] == local_dt(FUTURE_DAY, "22:00")
        assert result["summary"]["AVAILABLE"] == 27

    def test_booked_and_user_booked(self, service, multiuse_court, make_user, make_reservation):
        owner = make_user()
        make_reservation(multiuse_court, owner, start="10:00")

        as_owner = statuses_by_label(
            service.get_availability(multiuse_court.id, FUTURE_DAY, 60, sport="Voleibol", user_id=owner.id, now=EARLY)
        )
        as_stranger = statuses_by_label(
            service.get_availability(multiuse_court.id, FUTURE_DAY, 60, sport="Voleibol", now=EARLY)
        )

        assert [as_owner[t] for t in ("09:00", "09:30", "10:00", "10:30", "11:00")] == [
            "AVAILABLE",
            "USER_BOOKED",
            "USER_BOOKED",
            "USER_BOOKED",
            "AVAILABLE",
        ]
        assert as_stranger["10:00"] == "BOOKED"

    def test_secondary_reservation_leaves_room_for_other_secondary(
        self, service, multiuse_court, make_user, make_reservation
    ):
        make_reservation(multiuse_court, make_user(), start="10:00", sport="Voleibol")

        basquet = statuses_by_label(service.get_availability(multiuse_court.id, FUTURE_DAY, 60, sport="Básquet", now=EARLY))
        futbol = statuses_by_label(service.get_availability(multiuse_court.id, FUTURE_DAY, 60, now=EARLY))

        assert basquet["10:00"] == "AVAILABLE"
        assert futbol["10:00"] == "BOOKED"

    def test_maintenance(self, service, make_court, make_maintenance):
        court = make_court()
        make_maintenance(court, local_dt(FUTURE_DAY, "12:00"), minutes=60)

        statuses = statuses_by_label(service.get_availability(court.id, FUTURE_DAY, 60, now=EARLY))

        assert [statuses[t] for t in ("11:00", "11:30", "12:00", "12:30", "13:00")] == [
            "AVAILABLE",
            "MAINTENANCE",
            "MAINTENANCE",
            "MAINTENANCE",
            "AVAILABLE",
        ]

    def test_past_slots(self, service, make_court):
        court = make_court()

        result = service.get_availability(court.id, FUTURE_DAY, 60, now=local_dt(FUTURE_DAY, "12:00"))

        assert result["summary"]["PAST"] == 8
        assert statuses_by_label(result)["12:00"] == "AVAILABLE"

    def test_closed_day(self, service, make_center, make_court):
        center = make_center({**OPEN_EVERY_DAY, "exceptions": {FUTURE_DAY.isoformat(): {"closed": True}}})
        court = make_court(center)

        result = service.get_availability(court.id, FUTURE_DAY, 60, now=EARLY)

        assert result["open_ranges"] == []
        assert result["slots"] == []
        assert sum(result["summary"].values()) == 0

    def test_inactive_court(self, service, make_court):
        court = make_court(is_active=False)
        result = service.get_availability(court.id, FUTURE_DAY, 60, now=EARLY)
        assert result["summary"]["UNAVAILABLE"] == 27

    def test_center_without_timezone_uses_default(self, service, make_center, make_court):
        court = make_court(make_center(tz=None))
        assert service.get_availability(court.id, FUTURE_DAY, 60, now=EARLY)["timezone"] == "Europe/Madrid"

    def test_errors(self, service, make_court):
        court = make_court()
        with pytest.raises(NotFoundException):
            service.get_availability("01HZZZZZZZZZZZZZZZZZZZZZZZ", FUTURE_DAY, 60)
        with pytest.raises(ValidationException):
            service.get_availability(court.id, FUTURE_DAY, 10)
        with pytest.raises(ValidationException) as exc_info:
            service.get_availability(court.id, FUTURE_DAY, 60, sport="Tenis")
        assert exc_info.value.code == "SPORT_NOT_ALLOWED"


class TestCheckSlot:
    def test_available(self, service, make_court):
        court = make_court()
        result = service.check_slot(court.id, local_dt(FUTURE_DAY, "10:00"), 90, now=EARLY)
        assert result == {"available": True, "status": "AVAILABLE", "reason": None, "message": "Available"}

    def test_booked(self, service, multiuse_court, make_user, make_reservation):
        make_reservation(multiuse_court, make_user(), start="10:00")

        result = service.check_slot(multiuse_court.id, local_dt(FUTURE_DAY, "10:30"), 60, sport="Voleibol", now=EARLY)

        assert not result["available"]
        assert result["status"] == "BOOKED"
        assert result["reason"] == "primary_occupied"

    def test_excluding_own_reservation(self, service, make_court, make_user, make_reservation):
        court = make_court()
        reservation = make_reservation(court, make_user(), start="10:00")

        result = service.check_slot(
            court.id, local_dt(FUTURE_DAY, "10:30"), 60, exclude_reservation_id=reservation.id, now=EARLY
        )
        assert result["available"]

    def test_maintenance(self, service, make_court, make_maintenance):
        court = make_court()
        make_maintenance(court, local_dt(FUTURE_DAY, "10:00"))
        result = service.check_slot(court.id, local_dt(FUTURE_DAY, "10:30"), 60, now=EARLY)
        assert result["status"] == "MAINTENANCE"

    def test_past(self, service, make_court):
        court = make_court()
        start = local_dt(FUTURE_DAY, "10:00")
        result = service.check_slot(court.id, start, 60, now=start + timedelta(minutes=1))
        assert result["status"] == "PAST"

    def test_outside_hours(self, service, make_court):
        court = make_court()
        result = service.check_slot(court.id, local_dt(FUTURE_DAY, "21:30"), 60, now=EARLY)
        assert result["status"] == "UNAVAILABLE"
        assert not result["available"]
