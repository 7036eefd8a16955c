# sportcenter/models/reservation.py
"""
Reservation model.

A reservation holds one court for [start_time, end_time) for one sport. Its
lifecycle status and its payment fields move independently: payment only
changes the financial/status fields, never the time range.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportcenter.core.enums import PaymentMethod, PaymentStatus, ReservationStatus
from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base
from sportcenter.models.base_enum import create_safe_enum

if TYPE_CHECKING:
    from sportcenter.models.center import Court
    from sportcenter.models.user import User

logger = logging.getLogger(__name__)


class Reservation(Base):
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    court_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("courts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sport: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        create_safe_enum(ReservationStatus, "reservation_status"),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        create_safe_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        create_safe_enum(PaymentMethod, "payment_method"), nullable=True
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utc_now, nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    court: Mapped["Court"] = relationship("Court")
    user: Mapped["User"] = relationship("User")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_reservation_time_order"),
        CheckConstraint("total_price >= 0", name="check_reservation_price_non_negative"),
        Index("idx_reservations_court_start", "court_id", "start_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: court={self.court_id}, user={self.user_id}, "
            f"sport={self.sport}, {self.start_time}-{self.end_time}, status={self.status}>"
        )
