# sportcenter/repositories/wallet_repository.py
"""
Wallet Ledger Repository

Read side of the append-only ledger: idempotency lookups, the latest entry
per user, paginated history and the signed sum used by reconciliation.
"""

from __future__ import annotations

from decimal import Decimal
import logging
from typing import List, Optional, Tuple, cast

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import LedgerEntryType
from ..core.exceptions import RepositoryException
from ..models.wallet import WalletLedgerEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WalletLedgerRepository(BaseRepository[WalletLedgerEntry]):
    def __init__(self, db: Session):
        super().__init__(db, WalletLedgerEntry)
        self.logger = logging.getLogger(__name__)

    def get_by_idempotency_key(self, idempotency_key: str) -> Optional[WalletLedgerEntry]:
        try:
            return cast(
                Optional[WalletLedgerEntry],
                self.db.query(WalletLedgerEntry)
                .filter(WalletLedgerEntry.idempotency_key == idempotency_key)
                .first(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to look up ledger key %s: %s", idempotency_key, str(exc))
            raise RepositoryException("Failed to look up ledger entry") from exc

    def get_latest_for_user(self, user_id: str) -> Optional[WalletLedgerEntry]:
        try:
            return cast(
                Optional[WalletLedgerEntry],
                self.db.query(WalletLedgerEntry)
                .filter(WalletLedgerEntry.user_id == user_id)
                .order_by(WalletLedgerEntry.sequence.desc())
                .first(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to get latest ledger entry: %s", str(exc))
            raise RepositoryException("Failed to get latest ledger entry") from exc

    def list_for_user(
        self, user_id: str, *, page: int = 1, per_page: int = 20
    ) -> Tuple[List[WalletLedgerEntry], int]:
        """Return (entries newest first, total count) for one page."""
        try:
            query = self.db.query(WalletLedgerEntry).filter(WalletLedgerEntry.user_id == user_id)
            total = query.count()
            entries = (
                query.order_by(WalletLedgerEntry.sequence.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
                .all()
            )
            return cast(List[WalletLedgerEntry], entries), total
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list ledger entries: %s", str(exc))
            raise RepositoryException("Failed to list ledger entries") from exc

    def sum_signed_credits(self, user_id: str) -> Decimal:
        """Sum of credits with DEBIT entries negated."""
        signed = case(
            (WalletLedgerEntry.type == LedgerEntryType.DEBIT, -WalletLedgerEntry.credits),
            else_=WalletLedgerEntry.credits,
        )
        try:
            total = (
                self.db.query(func.coalesce(func.sum(signed), 0))
                .filter(WalletLedgerEntry.user_id == user_id)
                .scalar()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to sum ledger entries: %s", str(exc))
            raise RepositoryException("Failed to sum ledger entries") from exc
        # SQLite sums NUMERIC as float
        return Decimal(str(total or 0)).quantize(Decimal("0.01"))
