# sportcenter/services/wallet_ledger.py
"""
Wallet Ledger Service

The single writer of ``User.credits_balance``. Every balance change goes
through :meth:`WalletLedger.apply_entry`, which updates the balance and
appends the matching ledger entry in one unit of work:

1. lock the user row
2. return the prior result if the idempotency key was already applied
3. reject a debit larger than the balance
4. write the new balance
5. append the entry with ``balance_after``

Callers that already hold a transaction (payments, promotions, refunds) pass
``use_transaction=False`` so the ledger write commits or rolls back with
their own changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import LedgerEntryType, LedgerReason
from ..core.exceptions import (
    IdempotencyKeyReusedException,
    InsufficientCreditsException,
    NotFoundException,
    ValidationException,
)
from ..domain.rewards import round_credits, to_decimal
from ..models.wallet import WalletLedgerEntry
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import UserRepository
from ..repositories.wallet_repository import WalletLedgerRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    entry: WalletLedgerEntry
    balance_after: Decimal
    replayed: bool = False


@dataclass(frozen=True)
class ReconciliationReport:
    """Ledger conservation audit for one user."""

    user_id: str
    stored_balance: Decimal
    ledger_sum: Decimal
    latest_balance_after: Optional[Decimal]
    entry_count: int

    @property
    def consistent(self) -> bool:
        expected_latest = self.latest_balance_after
        if expected_latest is None:
            expected_latest = Decimal("0.00")
        return self.stored_balance == self.ledger_sum == expected_latest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "stored_balance": self.stored_balance,
            "ledger_sum": self.ledger_sum,
            "latest_balance_after": self.latest_balance_after,
            "entry_count": self.entry_count,
            "consistent": self.consistent,
        }


class WalletLedger(BaseService):
    """Append-only credit ledger and the user balance it drives."""

    def __init__(
        self,
        db: Session,
        ledger_repository: Optional[WalletLedgerRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.ledger_repository = ledger_repository or RepositoryFactory.create_wallet_ledger_repository(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("apply_entry")
    def apply_entry(
        self,
        *,
        user_id: str,
        entry_type: LedgerEntryType,
        reason: LedgerReason,
        credits: Decimal,
        idempotency_key: str,
        metadata: Optional[Dict[str, Any]] = None,
        use_transaction: bool = True,
    ) -> LedgerResult:
        """
        Apply one credit or debit exactly once per idempotency key.

        Raises:
            ValidationException: non-positive credits or a blank key
            NotFoundException: unknown user
            InsufficientCreditsException: debit larger than the balance
            IdempotencyKeyReusedException: key already used for a different entry
        """
        amount = round_credits(to_decimal(credits))
        if amount <= 0:
            raise ValidationException("Credits must be greater than zero", code="INVALID_CREDITS")
        if not idempotency_key or not idempotency_key.strip():
            raise ValidationException("An idempotency key is required", code="MISSING_IDEMPOTENCY_KEY")

        def _apply() -> LedgerResult:
            user = self.user_repository.get_for_update(user_id)
            if user is None:
                raise NotFoundException(f"User {user_id} not found")

            existing = self.ledger_repository.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                self._ensure_same_entry(existing, user_id, entry_type, reason, amount)
                self.logger.info(
                    "Ledger replay for key %s (user %s, entry %s)",
                    idempotency_key,
                    user_id,
                    existing.id,
                )
                prometheus_metrics.inc_ledger_replay()
                return LedgerResult(
                    entry=existing,
                    balance_after=round_credits(to_decimal(existing.balance_after)),
                    replayed=True,
                )

            balance = round_credits(to_decimal(user.credits_balance or 0))
            if entry_type == LedgerEntryType.DEBIT:
                if amount > balance:
                    self.logger.warning(
                        "Insufficient credits for user %s: balance %s, required %s",
                        user_id,
                        balance,
                        amount,
                    )
                    raise InsufficientCreditsException(balance=balance, required=amount)
                new_balance = balance - amount
            else:
                new_balance = balance + amount

            latest = self.ledger_repository.get_latest_for_user(user_id)
            sequence = latest.sequence + 1 if latest is not None else 1

            user.credits_balance = new_balance
            entry = self.ledger_repository.create(
                user_id=user_id,
                sequence=sequence,
                type=entry_type,
                reason=reason,
                credits=amount,
                balance_after=new_balance,
                idempotency_key=idempotency_key,
                meta=metadata or None,
            )

            prometheus_metrics.inc_ledger_entry(entry_type.value, reason.value)
            self.logger.info(
                "Ledger %s %s for user %s (%s): balance %s -> %s [key=%s]",
                entry_type.value,
                amount,
                user_id,
                reason.value,
                balance,
                new_balance,
                idempotency_key,
            )
            return LedgerResult(entry=entry, balance_after=new_balance, replayed=False)

        if use_transaction:
            with self.transaction():
                return _apply()
        return _apply()

    def _ensure_same_entry(
        self,
        existing: WalletLedgerEntry,
        user_id: str,
        entry_type: LedgerEntryType,
        reason: LedgerReason,
        amount: Decimal,
    ) -> None:
        same = (
            existing.user_id == user_id
            and existing.type == entry_type
            and existing.reason == reason
            and round_credits(to_decimal(existing.credits)) == amount
        )
        if not same:
            self.logger.warning(
                "Idempotency key %s reused for a different ledger entry", existing.idempotency_key
            )
            raise IdempotencyKeyReusedException(
                "This idempotency key was already used for a different operation",
                details={"idempotency_key": existing.idempotency_key},
            )

    @BaseService.measure_operation("top_up")
    def top_up(
        self,
        *,
        user_id: str,
        credits: Decimal,
        idempotency_key: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> LedgerResult:
        return self.apply_entry(
            user_id=user_id,
            entry_type=LedgerEntryType.CREDIT,
            reason=LedgerReason.TOPUP,
            credits=credits,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )

    def get_balance(self, user_id: str) -> Decimal:
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        return round_credits(to_decimal(user.credits_balance or 0))

    @BaseService.measure_operation("list_entries")
    def list_entries(
        self, user_id: str, *, page: int = 1, per_page: Optional[int] = None
    ) -> Tuple[List[WalletLedgerEntry], int]:
        """A page of the user's ledger, newest first, with the total count."""
        if page < 1:
            raise ValidationException("page must be 1 or greater")
        size = per_page or settings.ledger_page_size_default
        if size < 1:
            raise ValidationException("per_page must be 1 or greater")
        size = min(size, settings.ledger_page_size_max)
        return self.ledger_repository.list_for_user(user_id, page=page, per_page=size)

    @BaseService.measure_operation("reconcile")
    def reconcile(self, user_id: str) -> ReconciliationReport:
        """Compare the stored balance with the ledger's signed sum and latest entry."""
        stored = self.get_balance(user_id)
        ledger_sum = self.ledger_repository.sum_signed_credits(user_id)
        latest = self.ledger_repository.get_latest_for_user(user_id)
        report = ReconciliationReport(
            user_id=user_id,
            stored_balance=stored,
            ledger_sum=ledger_sum,
            latest_balance_after=(
                round_credits(to_decimal(latest.balance_after)) if latest is not None else None
            ),
            entry_count=latest.sequence if latest is not None else 0,
        )
        if not report.consistent:
            self.logger.error("Ledger inconsistency detected: %s", report.to_dict())
        return report
