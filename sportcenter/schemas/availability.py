"""Availability request and response schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from ..core.enums import SlotStatus
from ._strict_base import StrictModel, StrictRequestModel


class OpenRange(StrictModel):
    start: str = Field(description="Local opening time, HH:MM")
    end: str = Field(description="Local closing time, HH:MM")


class SlotOut(StrictModel):
    start: datetime
    end: datetime
    status: SlotStatus
    message: str


class AvailabilityResponse(StrictModel):
    court_id: str
    date: str
    duration_minutes: int
    sport: str
    timezone: str
    open_ranges: List[OpenRange]
    slots: List[SlotOut]
    summary: Dict[str, int]


class SlotCheckRequest(StrictRequestModel):
    start_time: datetime
    duration: int = Field(description="Duration in minutes", gt=0)
    sport: Optional[str] = None
    exclude_reservation_id: Optional[str] = None


class SlotCheckResponse(StrictModel):
    available: bool
    status: SlotStatus
    reason: Optional[str] = None
    message: str
