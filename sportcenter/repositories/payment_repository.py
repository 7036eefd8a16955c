"""Payment Record Repository."""

import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.payment import PaymentRecord
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRecordRepository(BaseRepository[PaymentRecord]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentRecord)
        self.logger = logging.getLogger(__name__)

    def get_by_idempotency_key(self, idempotency_key: str) -> Optional[PaymentRecord]:
        return self.find_one_by(idempotency_key=idempotency_key)

    def get_settled_for_reservation(self, reservation_id: str) -> Optional[PaymentRecord]:
        """The record of the payment that moved the reservation to paid, if any."""
        try:
            return cast(
                Optional[PaymentRecord],
                self.db.query(PaymentRecord)
                .filter(
                    PaymentRecord.reservation_id == reservation_id,
                    PaymentRecord.status == "paid",
                )
                .order_by(PaymentRecord.created_at.desc())
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting payment for reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to get payment record: {str(e)}")
