# sportcenter/routes/v1/promotions.py
"""
Promotion routes - API v1

Mounted under /api/v1/promotions.

    POST /apply     → Award a credit promotion to the caller
    POST /validate  → Quote a promotion code for an amount
    GET  /history   → The caller's promotion applications
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_user, get_promotion_engine
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.promotion import Promotion
from ...models.user import User
from ...schemas.promotion import (
    PromotionApplicationOut,
    PromotionApplyRequest,
    PromotionApplyResponse,
    PromotionQuoteResponse,
    PromotionSummary,
    PromotionValidateRequest,
)
from ...services.promotion_service import PromotionEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["promotions-v1"])


def _summary(promotion: Promotion) -> PromotionSummary:
    return PromotionSummary(
        id=promotion.id,
        name=promotion.name,
        code=promotion.code,
        type=promotion.type,
        status=promotion.status,
        usage_count=promotion.usage_count,
        usage_limit=promotion.usage_limit,
    )


@router.post("/apply", response_model=PromotionApplyResponse)
async def apply_promotion(
    payload: PromotionApplyRequest,
    current_user: User = Depends(get_current_user),
    promotion_engine: PromotionEngine = Depends(get_promotion_engine),
) -> PromotionApplyResponse:
    try:
        result = await asyncio.to_thread(
            promotion_engine.apply,
            promotion_id=payload.promotion_id,
            user_id=current_user.id,
            amount=payload.amount,
            metadata=payload.metadata,
            idempotency_key=payload.idempotency_key,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return PromotionApplyResponse(
        credits_awarded=result.credits_awarded,
        new_balance=result.new_balance,
        promotion=_summary(result.promotion),
    )


@router.post("/validate", response_model=PromotionQuoteResponse)
async def validate_promotion(
    payload: PromotionValidateRequest,
    current_user: User = Depends(get_current_user),
    promotion_engine: PromotionEngine = Depends(get_promotion_engine),
) -> PromotionQuoteResponse:
    try:
        result = await asyncio.to_thread(
            promotion_engine.quote, code=payload.code, amount=payload.amount
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    quote = result.quote
    return PromotionQuoteResponse(
        promotion=_summary(result.promotion),
        reward_amount=quote.reward_amount,
        is_discount=quote.is_discount,
        final_amount=quote.final_amount,
        savings=quote.savings,
        bonus=quote.bonus,
    )


@router.get("/history", response_model=List[PromotionApplicationOut])
async def promotion_history(
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    promotion_engine: PromotionEngine = Depends(get_promotion_engine),
) -> List[PromotionApplicationOut]:
    applications = await asyncio.to_thread(promotion_engine.history, current_user.id, limit)
    return [
        PromotionApplicationOut(
            id=application.id,
            promotion_id=application.promotion_id,
            promotion_name=application.promotion.name if application.promotion else None,
            promotion_type=application.promotion.type if application.promotion else None,
            credits_awarded=application.credits_awarded,
            created_at=application.created_at,
        )
        for application in applications
    ]
