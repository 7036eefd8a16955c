# sportcenter/services/availability_service.py
"""
Availability Service

Read-only availability for one court and one local date. Composes the three
pure stages:

    ScheduleResolver -> SlotGenerator -> resolve_slots

Reservations and maintenance for the whole local day are read once, inside a
single transaction (REPEATABLE READ on PostgreSQL), so every slot is judged
against the same snapshot.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import SlotStatus
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import (
    ensure_utc,
    get_center_timezone,
    local_day_bounds_utc,
    to_local,
    utc_now,
)
from ..domain.conflicts import (
    Blackout,
    ConflictReason,
    CourtSports,
    Occupancy,
    check_range,
    conflict_message,
    resolve_slots,
    summarize,
)
from ..domain.schedule import ScheduleResolver
from ..domain.slots import SlotGenerator
from ..models.center import Center, Court
from ..models.maintenance import MaintenanceWindow
from ..models.reservation import Reservation
from ..repositories.court_repository import CourtRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def validate_duration(duration_minutes: int) -> None:
    if not settings.min_reservation_minutes <= duration_minutes <= settings.max_reservation_minutes:
        raise ValidationException(
            f"Duration must be between {settings.min_reservation_minutes} and "
            f"{settings.max_reservation_minutes} minutes",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes},
        )


def resolve_sport(sports: CourtSports, sport: Optional[str]) -> str:
    """The court's spelling of ``sport``; the primary sport when none is given."""
    if sport is None or not sport.strip():
        return sports.primary
    canonical = sports.canonical(sport)
    if canonical is None:
        raise ValidationException(
            f"Sport {sport!r} is not played on this court",
            code="SPORT_NOT_ALLOWED",
            details={"primary_sport": sports.primary, "allowed_sports": sorted(sports.secondary)},
        )
    return canonical


def within_operating_hours(center: Center, start: datetime, end: datetime) -> bool:
    """True when [start, end) sits inside one open interval of its local date."""
    tz = get_center_timezone(center)
    local_start = to_local(start, tz)
    local_end = to_local(end, tz)
    if local_start.date() != local_end.date():
        return False
    resolver = ScheduleResolver.from_settings(center.settings)
    return resolver.is_open_for(local_start.date(), local_start.time(), local_end.time())


def to_occupancies(reservations: Sequence[Reservation]) -> List[Occupancy]:
    return [
        Occupancy(
            start=ensure_utc(r.start_time),
            end=ensure_utc(r.end_time),
            sport=r.sport,
            reservation_id=r.id,
            user_id=r.user_id,
        )
        for r in reservations
    ]


def to_blackouts(windows: Sequence[MaintenanceWindow]) -> List[Blackout]:
    return [
        Blackout(start=ensure_utc(w.scheduled_at), end=ensure_utc(w.ends_at), maintenance_id=w.id)
        for w in windows
    ]


class AvailabilityService(BaseService):
    def __init__(
        self,
        db: Session,
        court_repository: Optional[CourtRepository] = None,
        reservation_repository: Optional[ReservationRepository] = None,
    ):
        super().__init__(db)
        self.court_repository = court_repository or RepositoryFactory.create_court_repository(db)
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )

    def _snapshot_isolation(self) -> None:
        """Pin the isolation level before the first read of the transaction."""
        if self.court_repository.dialect_name != "postgresql":
            return
        if self.db.in_transaction():
            self.logger.debug("Transaction already open; keeping its isolation level")
            return
        self.db.connection(
            execution_options={"isolation_level": settings.availability_isolation_level}
        )

    def _load_court(self, court_id: str) -> Court:
        court = self.court_repository.get_with_center(court_id)
        if court is None:
            raise NotFoundException("Court not found", code="COURT_NOT_FOUND")
        return court

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self,
        court_id: str,
        day: date,
        duration_minutes: int,
        *,
        sport: Optional[str] = None,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Slot-by-slot availability of a court for a local date.

        Returns:
            Dict with court, date, duration, sport, timezone, open ranges,
            slots (start, end, status, message) and a per-status summary
        """
        validate_duration(duration_minutes)
        now = ensure_utc(now or utc_now())

        self._snapshot_isolation()
        with self.transaction():
            court = self._load_court(court_id)
            sports = CourtSports.from_court(court)
            requested_sport = resolve_sport(sports, sport)
            tz: pytz.BaseTzInfo = get_center_timezone(court.center)

            ranges = ScheduleResolver.from_settings(court.center.settings).resolve(day)
            day_start, day_end = local_day_bounds_utc(day, tz)
            reservations = to_occupancies(
                self.reservation_repository.get_blocking_reservations(court.id, day_start, day_end)
            )
            maintenance = to_blackouts(
                self.court_repository.get_active_maintenance(court.id, day_start, day_end)
            )

        generator = SlotGenerator(
            day,
            ranges,
            duration_minutes,
            tz=tz,
            step_minutes=settings.slot_step_minutes,
            now=now,
        )
        slots = resolve_slots(
            generator,
            requested_sport,
            sports,
            reservations,
            maintenance,
            user_id=user_id,
            court_active=court.is_active,
        )
        self.logger.debug(
            "Availability for court %s on %s: %d slots, %d reservations, %d maintenance windows",
            court.id,
            day,
            len(slots),
            len(reservations),
            len(maintenance),
        )
        return {
            "court_id": court.id,
            "date": day.isoformat(),
            "duration_minutes": duration_minutes,
            "sport": requested_sport,
            "timezone": tz.zone,
            "open_ranges": [{"start": r.start.strftime("%H:%M"), "end": r.end.strftime("%H:%M")} for r in ranges],
            "slots": [slot.to_dict() for slot in slots],
            "summary": summarize(slots),
        }

    @BaseService.measure_operation("check_slot")
    def check_slot(
        self,
        court_id: str,
        start_time: datetime,
        duration_minutes: int,
        *,
        sport: Optional[str] = None,
        exclude_reservation_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Availability of one exact [start, start + duration) range."""
        validate_duration(duration_minutes)
        now = ensure_utc(now or utc_now())
        start = ensure_utc(start_time)
        end = start + timedelta(minutes=duration_minutes)

        self._snapshot_isolation()
        with self.transaction():
            court = self._load_court(court_id)
            sports = CourtSports.from_court(court)
            requested_sport = resolve_sport(sports, sport)

            if start < now:
                return self._check_result(SlotStatus.PAST, None, "This time has already passed")
            if not court.is_active:
                return self._check_result(SlotStatus.UNAVAILABLE, None, "Court is not active")
            if not within_operating_hours(court.center, start, end):
                return self._check_result(
                    SlotStatus.UNAVAILABLE, None, "Outside the center's operating hours"
                )

            reservations = self.reservation_repository.get_blocking_reservations(
                court.id, start, end, exclude_reservation_id=exclude_reservation_id
            )
            maintenance = self.court_repository.get_active_maintenance(court.id, start, end)

        check = check_range(
            start, end, requested_sport, sports, to_occupancies(reservations), to_blackouts(maintenance)
        )
        if check.ok:
            return self._check_result(SlotStatus.AVAILABLE, None, "Available")
        status = (
            SlotStatus.MAINTENANCE
            if check.reason == ConflictReason.MAINTENANCE
            else SlotStatus.UNAVAILABLE
            if check.reason == ConflictReason.SPORT_NOT_ALLOWED
            else SlotStatus.BOOKED
        )
        return self._check_result(status, check.reason, conflict_message(check.reason))

    @staticmethod
    def _check_result(
        status: SlotStatus, reason: Optional[ConflictReason], message: str
    ) -> Dict[str, Any]:
        return {
            "available": status == SlotStatus.AVAILABLE,
            "status": status.value,
            "reason": reason.value if reason is not None else None,
            "message": message,
        }
