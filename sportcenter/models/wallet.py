"""
Wallet ledger model.

Entries are append-only. ``sequence`` numbers a user's entries in the order
they were applied, so the latest entry is unambiguous even when two entries
share a timestamp.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from sportcenter.core.enums import LedgerEntryType, LedgerReason
from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base
from sportcenter.models.base_enum import create_safe_enum


class WalletLedgerEntry(Base):
    """Immutable record of a single credit balance change."""

    __tablename__ = "wallet_ledger_entries"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[LedgerEntryType] = mapped_column(
        create_safe_enum(LedgerEntryType, "ledger_entry_type"), nullable=False
    )
    reason: Mapped[LedgerReason] = mapped_column(
        create_safe_enum(LedgerReason, "ledger_reason"), nullable=False
    )
    credits: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("credits > 0", name="ck_ledger_credits_positive"),
        CheckConstraint("balance_after >= 0", name="ck_ledger_balance_after_non_negative"),
        UniqueConstraint("user_id", "sequence", name="uq_ledger_user_sequence"),
        Index("idx_ledger_user_created_at", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<WalletLedgerEntry(user_id={self.user_id}, #{self.sequence} {self.type} "
            f"{self.credits} {self.reason}, balance_after={self.balance_after})>"
        )
