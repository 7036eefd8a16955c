# sportcenter/models/promotion.py
"""
Promotion and PromotionApplication models.

``rewards`` and ``conditions`` stay JSON in storage; the reward calculator in
sportcenter.domain.rewards parses them into closed variants.
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
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportcenter.core.enums import PromotionStatus, PromotionType
from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base
from sportcenter.models.base_enum import create_safe_enum


class Promotion(Base):
    __tablename__ = "promotions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    code: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    type: Mapped[PromotionType] = mapped_column(
        create_safe_enum(PromotionType, "promotion_type"), nullable=False
    )
    status: Mapped[PromotionStatus] = mapped_column(
        create_safe_enum(PromotionStatus, "promotion_status"),
        nullable=False,
        default=PromotionStatus.DRAFT,
    )
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_to: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rewards: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    conditions: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "usage_limit IS NULL OR usage_count <= usage_limit",
            name="ck_promotion_usage_within_limit",
        ),
        CheckConstraint("usage_count >= 0", name="ck_promotion_usage_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Promotion(id={self.id}, type={self.type}, status={self.status}, used={self.usage_count}/{self.usage_limit})>"


class PromotionApplication(Base):
    """
    Append-only record that a user received a promotion.

    ``once_key`` is set to ``{promotion_id}:{user_id}`` for one-time promotion
    types; its unique constraint enforces one application per pair.
    """

    __tablename__ = "promotion_applications"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    promotion_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    credits_awarded: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    once_key: Mapped[Optional[str]] = mapped_column(String(80), unique=True, nullable=True)
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    promotion: Mapped[Promotion] = relationship("Promotion")

    __table_args__ = (
        CheckConstraint("credits_awarded >= 0", name="ck_promotion_application_non_negative"),
        Index("idx_promotion_applications_user", "user_id", "created_at"),
        Index("idx_promotion_applications_promotion_user", "promotion_id", "user_id"),
    )
