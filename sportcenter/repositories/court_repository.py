# sportcenter/repositories/court_repository.py
"""
Court Repository

Court lookups for availability and reservation creation, the court row lock
that serializes reservation inserts, and active maintenance windows.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import ACTIVE_MAINTENANCE_STATUSES
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.center import Court
from ..models.maintenance import MaintenanceWindow
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CourtRepository(BaseRepository[Court]):
    """Repository for courts and their maintenance windows."""

    def __init__(self, db: Session):
        super().__init__(db, Court)
        self.logger = logging.getLogger(__name__)

    def get_with_center(self, court_id: str) -> Optional[Court]:
        try:
            return cast(
                Optional[Court],
                self.db.query(Court)
                .options(joinedload(Court.center))
                .filter(Court.id == court_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting court {court_id}: {str(e)}")
            raise RepositoryException(f"Failed to get court: {str(e)}")

    def lock_court(self, court_id: str) -> Optional[Court]:
        """
        Lock the court row for the rest of the transaction.

        Every reservation insert for a court takes this lock first, so two
        concurrent creations for the same court run their conflict checks
        one after the other.
        """
        return self.get_for_update(court_id)

    def get_active_maintenance(
        self, court_id: str, start: datetime, end: datetime
    ) -> List[MaintenanceWindow]:
        """
        Active (scheduled or in-progress) maintenance overlapping [start, end).

        The window end is derived from its duration, so the upper bound is
        filtered in SQL and the lower bound in Python.
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        try:
            candidates = (
                self.db.query(MaintenanceWindow)
                .filter(
                    MaintenanceWindow.court_id == court_id,
                    MaintenanceWindow.status.in_(list(ACTIVE_MAINTENANCE_STATUSES)),
                    MaintenanceWindow.scheduled_at < end,
                )
                .order_by(MaintenanceWindow.scheduled_at)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting maintenance for court {court_id}: {str(e)}")
            raise RepositoryException(f"Failed to get maintenance windows: {str(e)}")
        return [window for window in candidates if ensure_utc(window.ends_at) > start]
