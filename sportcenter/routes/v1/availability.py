# sportcenter/routes/v1/availability.py
"""
Availability routes - API v1

Mounted under /api/v1/courts.

    GET  /{court_id}/availability        → Slot availability for a local date
    POST /{court_id}/availability/check  → Availability of one exact range

The caller's user id is optional here; when present, slots the caller holds
are reported as USER_BOOKED.
"""

import asyncio
from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies import get_availability_service, get_current_user_id_optional
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...schemas.availability import AvailabilityResponse, SlotCheckRequest, SlotCheckResponse
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get("/{court_id}/availability", response_model=AvailabilityResponse)
async def get_court_availability(
    court_id: str = Path(..., min_length=1),
    day: date = Query(..., alias="date", description="Local date, YYYY-MM-DD"),
    duration: int = Query(60, ge=1, description="Reservation duration in minutes"),
    sport: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_current_user_id_optional),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    try:
        result = await asyncio.to_thread(
            availability_service.get_availability,
            court_id,
            day,
            duration,
            sport=sport,
            user_id=user_id,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return AvailabilityResponse(**result)


@router.post("/{court_id}/availability/check", response_model=SlotCheckResponse)
async def check_court_slot(
    payload: SlotCheckRequest,
    court_id: str = Path(..., min_length=1),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotCheckResponse:
    """Re-validate one range, e.g. before moving an existing reservation."""
    try:
        result = await asyncio.to_thread(
            availability_service.check_slot,
            court_id,
            payload.start_time,
            payload.duration,
            sport=payload.sport,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return SlotCheckResponse(**result)
