"""Wallet schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import LedgerEntryType, LedgerReason
from ._strict_base import StrictModel
from .base import Money


class LedgerEntryOut(StrictModel):
    id: str
    type: LedgerEntryType
    reason: LedgerReason
    credits: Money
    balance_after: Money
    created_at: datetime
    metadata: Optional[Dict[str, Any]] = None


class BalanceResponse(StrictModel):
    balance: Money
    consistent: bool
