"""Promotion schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from ..core.enums import PromotionStatus, PromotionType
from ._strict_base import StrictModel, StrictRequestModel
from .base import Money


class PromotionApplyRequest(StrictRequestModel):
    promotion_id: str
    amount: Optional[Money] = None
    metadata: Optional[Dict[str, Any]] = None
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=200)


class PromotionSummary(StrictModel):
    id: str
    name: str
    code: Optional[str] = None
    type: PromotionType
    status: PromotionStatus
    usage_count: int
    usage_limit: Optional[int] = None


class PromotionApplyResponse(StrictModel):
    credits_awarded: Money
    new_balance: Money
    promotion: PromotionSummary


class PromotionValidateRequest(StrictRequestModel):
    code: str = Field(min_length=1, max_length=64)
    amount: Money


class PromotionQuoteResponse(StrictModel):
    promotion: PromotionSummary
    reward_amount: Money
    is_discount: bool
    final_amount: Money
    savings: Money
    bonus: Money


class PromotionApplicationOut(StrictModel):
    id: str
    promotion_id: str
    promotion_name: Optional[str] = None
    promotion_type: Optional[PromotionType] = None
    credits_awarded: Money
    created_at: datetime
