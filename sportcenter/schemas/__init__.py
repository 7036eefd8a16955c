"""
Pydantic request/response schemas for the HTTP API.
"""

from .availability import AvailabilityResponse, SlotCheckRequest, SlotCheckResponse
from .base import Money
from .base_responses import HealthResponse, PaginatedResponse
from .promotion import (
    PromotionApplicationOut,
    PromotionApplyRequest,
    PromotionApplyResponse,
    PromotionQuoteResponse,
    PromotionValidateRequest,
)
from .reservation import (
    CancelRequest,
    PaymentRequest,
    PaymentResponse,
    ReservationCreate,
    ReservationResponse,
)
from .wallet import BalanceResponse, LedgerEntryOut

__all__ = [
    "AvailabilityResponse",
    "BalanceResponse",
    "CancelRequest",
    "HealthResponse",
    "LedgerEntryOut",
    "Money",
    "PaginatedResponse",
    "PaymentRequest",
    "PaymentResponse",
    "PromotionApplicationOut",
    "PromotionApplyRequest",
    "PromotionApplyResponse",
    "PromotionQuoteResponse",
    "PromotionValidateRequest",
    "ReservationCreate",
    "ReservationResponse",
    "SlotCheckRequest",
    "SlotCheckResponse",
]
