# sportcenter/repositories/reservation_repository.py
"""
Reservation Repository

Overlap queries for conflict checks plus the reservation row lock used by
payments and refunds.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BLOCKING_RESERVATION_STATUSES
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.reservation import Reservation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    def __init__(self, db: Session):
        super().__init__(db, Reservation)
        self.logger = logging.getLogger(__name__)

    def get_blocking_reservations(
        self,
        court_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Reservations in pending, paid or in-progress overlapping [start, end).

        Args:
            court_id: The court to check
            start: Range start (UTC)
            end: Range end (UTC)
            exclude_reservation_id: Optional reservation to leave out

        Returns:
            Reservations ordered by start time
        """
        try:
            query = self.db.query(Reservation).filter(
                Reservation.court_id == court_id,
                Reservation.status.in_(list(BLOCKING_RESERVATION_STATUSES)),
                Reservation.start_time < ensure_utc(end),
                Reservation.end_time > ensure_utc(start),
            )
            if exclude_reservation_id:
                query = query.filter(Reservation.id != exclude_reservation_id)
            return cast(List[Reservation], query.order_by(Reservation.start_time).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting reservations for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict reservations: {str(e)}")

    def list_for_user(self, user_id: str, limit: int = 100) -> List[Reservation]:
        try:
            return cast(
                List[Reservation],
                self.db.query(Reservation)
                .filter(Reservation.user_id == user_id)
                .order_by(Reservation.start_time.desc())
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing reservations for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list reservations: {str(e)}")
