"""
Payment records.

One row per processed payment request, keyed by the caller's idempotency key.
The stored response is returned verbatim when the same key is retried.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from sportcenter.core.enums import PaymentMethod
from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base
from sportcenter.models.base_enum import create_safe_enum


class PaymentRecord(Base):
    __tablename__ = "payment_records"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    reservation_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    idempotency_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        create_safe_enum(PaymentMethod, "payment_method"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    response: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<PaymentRecord(reservation_id={self.reservation_id}, method={self.payment_method}, status={self.status})>"
