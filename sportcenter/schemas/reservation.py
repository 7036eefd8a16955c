"""Reservation and payment schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..core.enums import PaymentMethod, PaymentStatus, ReservationStatus
from ._strict_base import StrictModel, StrictRequestModel
from .base import Money


class ReservationCreate(StrictRequestModel):
    court_id: str
    sport: str = Field(min_length=1, max_length=64)
    start_time: datetime
    end_time: datetime
    user_id: Optional[str] = Field(
        default=None, description="Must match the authenticated user when sent"
    )


class ReservationResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    court_id: str
    user_id: str
    sport: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    total_price: Money


class CancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class AppliedPromotionIn(StrictRequestModel):
    promotion_id: Optional[str] = None
    code: Optional[str] = None
    final_amount: Optional[Money] = None

    @model_validator(mode="after")
    def _require_reference(self) -> "AppliedPromotionIn":
        if not self.promotion_id and not self.code:
            raise ValueError("promotion_id or code is required")
        return self


class PaymentRequest(StrictRequestModel):
    payment_method: PaymentMethod
    amount: Money
    idempotency_key: str = Field(min_length=1, max_length=255)
    applied_promotion: Optional[AppliedPromotionIn] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def _lower_method(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class PaymentResponse(StrictModel):
    reservation_id: str
    payment_method: PaymentMethod
    status: str
    amount: Money
    original_amount: Money
    discount: Optional[Money] = None
    promotion_id: Optional[str] = None
    credits_used: Optional[Money] = None
    balance_after: Optional[Money] = None
    redirect_url: Optional[str] = None
    reservation_status: ReservationStatus
    payment_status: PaymentStatus
