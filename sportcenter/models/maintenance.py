"""Court maintenance windows."""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportcenter.core.enums import MaintenanceStatus
from sportcenter.core.timezone_utils import utc_now
from sportcenter.core.ulid_helper import generate_ulid
from sportcenter.database import Base
from sportcenter.models.base_enum import create_safe_enum

if TYPE_CHECKING:
    from sportcenter.models.center import Court


class MaintenanceWindow(Base):
    """A block of time during which a court cannot be booked."""

    __tablename__ = "maintenance_windows"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    court_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("courts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[MaintenanceStatus] = mapped_column(
        create_safe_enum(MaintenanceStatus, "maintenance_status"),
        nullable=False,
        default=MaintenanceStatus.SCHEDULED,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    court: Mapped["Court"] = relationship("Court", back_populates="maintenance_windows")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_maintenance_duration_positive"),
    )

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    def __repr__(self) -> str:
        return f"<MaintenanceWindow(court_id={self.court_id}, at={self.scheduled_at}, status={self.status})>"
