# sportcenter/services/reservation_service.py
"""
Reservation Service

Creates pending reservations and moves them through their lifecycle.

Creation is the one place where concurrency correctness is mandatory: the
court row is locked, then the sport-priority conflict check is re-run against
the reservations and maintenance visible under that lock, and only then is the
new PENDING row inserted, all in one transaction. Two concurrent requests for
the same court therefore check and insert one after the other.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import (
    RESERVATION_TRANSITIONS,
    PaymentMethod,
    PaymentStatus,
    ReservationStatus,
)
from ..core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..domain.conflicts import CourtSports, check_range, conflict_message
from ..domain.rewards import round_credits, to_decimal
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.court_repository import CourtRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from ..repositories.user_repository import UserRepository
from .availability_service import (
    resolve_sport,
    to_blackouts,
    to_occupancies,
    validate_duration,
    within_operating_hours,
)
from .base import BaseService
from .reservation_payment_service import ReservationPaymentProcessor

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")


class ReservationService(BaseService):
    def __init__(
        self,
        db: Session,
        court_repository: Optional[CourtRepository] = None,
        reservation_repository: Optional[ReservationRepository] = None,
        user_repository: Optional[UserRepository] = None,
        payment_processor: Optional[ReservationPaymentProcessor] = None,
    ):
        super().__init__(db)
        self.court_repository = court_repository or RepositoryFactory.create_court_repository(db)
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.payment_processor = payment_processor or ReservationPaymentProcessor(db)

    @BaseService.measure_operation("create_pending")
    def create_pending(
        self,
        *,
        court_id: str,
        user_id: str,
        sport: str,
        start_time: datetime,
        end_time: datetime,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Insert a PENDING reservation after a conflict check under the court lock.

        Raises:
            ValidationException: bad range, duration, sport, past start or closed center
            NotFoundException: unknown court or user
            InvalidStateException: inactive court
            SlotConflictException: the range is held for this sport
        """
        start = ensure_utc(start_time)
        end = ensure_utc(end_time)
        now = ensure_utc(now or utc_now())

        if end <= start:
            raise ValidationException("End time must be after start time", code="INVALID_TIME_RANGE")
        minutes = int((end - start).total_seconds() // 60)
        validate_duration(minutes)
        if start < now:
            raise ValidationException(
                "Cannot create a reservation in the past", code="RESERVATION_IN_PAST"
            )

        with self.transaction():
            if self.user_repository.get_by_id(user_id) is None:
                raise NotFoundException("User not found", code="USER_NOT_FOUND")

            court = self.court_repository.lock_court(court_id)
            if court is None:
                raise NotFoundException("Court not found", code="COURT_NOT_FOUND")
            if not court.is_active:
                raise InvalidStateException("Court is not active", code="COURT_INACTIVE")

            sports = CourtSports.from_court(court)
            canonical_sport = resolve_sport(sports, sport)

            if not within_operating_hours(court.center, start, end):
                raise ValidationException(
                    "The requested time is outside the center's operating hours",
                    code="OUTSIDE_OPERATING_HOURS",
                )

            reservations = self.reservation_repository.get_blocking_reservations(court.id, start, end)
            maintenance = self.court_repository.get_active_maintenance(court.id, start, end)
            check = check_range(
                start,
                end,
                canonical_sport,
                sports,
                to_occupancies(reservations),
                to_blackouts(maintenance),
            )
            if not check.ok:
                prometheus_metrics.inc_reservation_conflict(check.reason.value)
                self.logger.warning(
                    "Reservation conflict on court %s for %s %s-%s: %s",
                    court.id,
                    canonical_sport,
                    start.isoformat(),
                    end.isoformat(),
                    check.reason.value,
                )
                raise SlotConflictException(
                    conflict_message(check.reason),
                    details={
                        "reason": check.reason.value,
                        "conflicting_reservation_ids": [o.reservation_id for o in check.blocking],
                        "maintenance_ids": [m.maintenance_id for m in check.maintenance],
                    },
                )

            price = round_credits(
                to_decimal(court.hourly_rate) * Decimal(minutes) / MINUTES_PER_HOUR
            )
            reservation = self.reservation_repository.create(
                court_id=court.id,
                user_id=user_id,
                sport=canonical_sport,
                start_time=start,
                end_time=end,
                status=ReservationStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                total_price=price,
            )
            self.logger.info(
                "Created pending reservation %s on court %s for user %s (%s, %s-%s, %s)",
                reservation.id,
                court.id,
                user_id,
                canonical_sport,
                start.isoformat(),
                end.isoformat(),
                price,
            )
            return reservation

    def get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repository.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
        return reservation

    def list_for_user(self, user_id: str, limit: int = 100) -> List[Reservation]:
        return self.reservation_repository.list_for_user(user_id, limit=limit)

    @BaseService.measure_operation("transition")
    def transition(
        self,
        reservation_id: str,
        new_status: ReservationStatus,
        *,
        reason: Optional[str] = None,
        use_transaction: bool = True,
    ) -> Reservation:
        """Move a reservation along the lifecycle graph."""

        def _transition() -> Reservation:
            reservation = self.reservation_repository.get_for_update(reservation_id)
            if reservation is None:
                raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
            current = reservation.status
            if new_status not in RESERVATION_TRANSITIONS[current]:
                raise InvalidStateException(
                    f"Cannot move reservation from {current.value} to {new_status.value}",
                    code="INVALID_TRANSITION",
                    details={"from": current.value, "to": new_status.value},
                )
            reservation.status = new_status
            if new_status == ReservationStatus.CANCELLED:
                reservation.cancelled_at = utc_now()
                reservation.cancellation_reason = reason
            self.reservation_repository.flush()
            self.logger.info(
                "Reservation %s: %s -> %s", reservation.id, current.value, new_status.value
            )
            return reservation

        if use_transaction:
            with self.transaction():
                return _transition()
        return _transition()

    @BaseService.measure_operation("cancel")
    def cancel(self, reservation_id: str, user_id: str, reason: Optional[str] = None) -> Reservation:
        """
        Cancel a reservation on behalf of its owner.

        A reservation paid with credits is refunded in the same step.
        """
        reservation = self.get_reservation(reservation_id)
        if reservation.user_id != user_id:
            raise ForbiddenException("You can only cancel your own reservations")
        if ReservationStatus.CANCELLED not in RESERVATION_TRANSITIONS[reservation.status]:
            raise InvalidStateException(
                f"A {reservation.status.value} reservation can no longer be cancelled",
                code="INVALID_TRANSITION",
                details={"from": reservation.status.value, "to": ReservationStatus.CANCELLED.value},
            )

        if (
            reservation.payment_status == PaymentStatus.PAID
            and reservation.payment_method == PaymentMethod.CREDITS
        ):
            self.payment_processor.refund_reservation(
                reservation.id, reason=reason or "cancelled_by_user", actor_id=user_id
            )
            return self.get_reservation(reservation.id)
        return self.transition(reservation.id, ReservationStatus.CANCELLED, reason=reason)
