# sportcenter/routes/v1/wallet.py
"""
Wallet routes - API v1

Mounted under /api/v1/wallet.

    GET /ledger   → The caller's ledger entries, newest first
    GET /balance  → Current balance plus the conservation check
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_user, get_wallet_ledger
from ...core.config import settings
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base_responses import PaginatedResponse
from ...schemas.wallet import BalanceResponse, LedgerEntryOut
from ...services.wallet_ledger import WalletLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["wallet-v1"])


@router.get("/ledger", response_model=PaginatedResponse[LedgerEntryOut])
async def get_ledger(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    wallet_ledger: WalletLedger = Depends(get_wallet_ledger),
) -> PaginatedResponse[LedgerEntryOut]:
    try:
        entries, total = await asyncio.to_thread(
            wallet_ledger.list_entries, current_user.id, page=page, per_page=per_page
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    size = min(per_page or settings.ledger_page_size_default, settings.ledger_page_size_max)
    return PaginatedResponse[LedgerEntryOut](
        items=[
            LedgerEntryOut(
                id=entry.id,
                type=entry.type,
                reason=entry.reason,
                credits=entry.credits,
                balance_after=entry.balance_after,
                created_at=entry.created_at,
                metadata=entry.meta,
            )
            for entry in entries
        ],
        total=total,
        page=page,
        per_page=size,
        has_next=page * size < total,
        has_prev=page > 1,
    )


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: User = Depends(get_current_user),
    wallet_ledger: WalletLedger = Depends(get_wallet_ledger),
) -> BalanceResponse:
    try:
        report = await asyncio.to_thread(wallet_ledger.reconcile, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BalanceResponse(balance=report.stored_balance, consistent=report.consistent)
