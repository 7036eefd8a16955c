# sportcenter/routes/v1/reservations.py
"""
Reservation routes - API v1

Mounted under /api/v1/reservations. All endpoints act for the user in the
X-User-Id header.

    POST /                       → Create a pending reservation (201, 409 on conflict)
    POST /{reservation_id}/pay   → Pay with credits, card or free
    POST /{reservation_id}/cancel → Cancel, refunding credit payments
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, status

from ...api.dependencies import (
    get_current_user,
    get_payment_processor,
    get_reservation_service,
)
from ...core.exceptions import DomainException, ForbiddenException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.reservation import (
    CancelRequest,
    PaymentRequest,
    PaymentResponse,
    ReservationCreate,
    ReservationResponse,
)
from ...services.reservation_payment_service import (
    AppliedPromotion,
    ReservationPaymentProcessor,
)
from ...services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reservations-v1"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    current_user: User = Depends(get_current_user),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    if payload.user_id is not None and payload.user_id != current_user.id:
        handle_domain_exception(ForbiddenException("You can only book for yourself"))
    try:
        reservation = await asyncio.to_thread(
            reservation_service.create_pending,
            court_id=payload.court_id,
            user_id=current_user.id,
            sport=payload.sport,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReservationResponse.model_validate(reservation)


@router.post("/{reservation_id}/pay", response_model=PaymentResponse)
async def pay_reservation(
    payload: PaymentRequest,
    reservation_id: str = Path(..., min_length=1),
    current_user: User = Depends(get_current_user),
    payment_processor: ReservationPaymentProcessor = Depends(get_payment_processor),
) -> PaymentResponse:
    applied = None
    if payload.applied_promotion is not None:
        applied = AppliedPromotion(
            promotion_id=payload.applied_promotion.promotion_id,
            code=payload.applied_promotion.code,
            final_amount=payload.applied_promotion.final_amount,
        )
    try:
        result = await asyncio.to_thread(
            payment_processor.process_payment,
            reservation_id=reservation_id,
            user_id=current_user.id,
            payment_method=payload.payment_method,
            amount=payload.amount,
            idempotency_key=payload.idempotency_key,
            applied_promotion=applied,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return PaymentResponse(**result)


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: str = Path(..., min_length=1),
    payload: Optional[CancelRequest] = Body(default=None),
    current_user: User = Depends(get_current_user),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(
            reservation_service.cancel,
            reservation_id,
            current_user.id,
            payload.reason if payload is not None else None,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReservationResponse.model_validate(reservation)
