# sportcenter/models/center.py
"""
Center and Court models.

A center owns its schedule configuration (weekly slots, legacy opening
hours and date exceptions) as a JSON blob; it is parsed into typed rules by
sportcenter.domain.schedule before any resolution happens.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base

if TYPE_CHECKING:
    from sportcenter.models.maintenance import MaintenanceWindow


class Center(Base):
    """A sports center with its operating-hours configuration."""

    __tablename__ = "centers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    courts: Mapped[List["Court"]] = relationship("Court", back_populates="center")

    def __repr__(self) -> str:
        return f"<Center(id={self.id}, name={self.name})>"


class Court(Base):
    """
    A bookable court.

    Multiuse courts list their secondary sports in ``allowed_sports``; the
    primary sport is never one of them.
    """

    __tablename__ = "courts"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    center_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("centers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    primary_sport: Mapped[str] = mapped_column(String(64), nullable=False)
    allowed_sports: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_multiuse: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    center: Mapped[Center] = relationship("Center", back_populates="courts")
    maintenance_windows: Mapped[List["MaintenanceWindow"]] = relationship(
        "MaintenanceWindow", back_populates="court", cascade="all, delete-orphan"
    )

    __table_args__ = (CheckConstraint("hourly_rate >= 0", name="check_court_rate_non_negative"),)

    def __repr__(self) -> str:
        return (
            f"<Court(id={self.id}, primary={self.primary_sport}, "
            f"multiuse={self.is_multiuse}, active={self.is_active})>"
        )
