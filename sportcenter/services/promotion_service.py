# sportcenter/services/promotion_service.py
"""
Promotion Engine

Eligibility checks, reward calculation and the recording of promotion
applications. Credit rewards are paid out through the WalletLedger inside the
same transaction that records the application and bumps ``usage_count``.

Discount promotions are never paid out as credits; they are quoted here and
redeemed by the reservation payment processor.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy.orm import Session

from ..core.enums import (
    ONE_TIME_PROMOTION_TYPES,
    LedgerEntryType,
    LedgerReason,
    PromotionStatus,
    PromotionType,
)
from ..core.exceptions import (
    AlreadyUsedException,
    InvalidStateException,
    NotFoundException,
    PromotionExpiredException,
    UsageLimitExceededException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, get_timezone, to_local, utc_now
from ..domain.rewards import (
    PromotionConditions,
    Quote,
    RewardSpec,
    compute_reward,
    is_discount,
    parse_rewards,
    quote_amount,
    round_credits,
    to_decimal,
)
from ..models.promotion import Promotion, PromotionApplication
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.promotion_repository import (
    PromotionApplicationRepository,
    PromotionRepository,
)
from .base import BaseService
from .wallet_ledger import WalletLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionApplyResult:
    credits_awarded: Decimal
    new_balance: Decimal
    promotion: Promotion
    application_id: Optional[str] = None
    replayed: bool = False


@dataclass(frozen=True)
class PromotionQuote:
    promotion: Promotion
    quote: Quote


class PromotionEngine(BaseService):
    """Evaluates and applies promotions."""

    def __init__(
        self,
        db: Session,
        ledger: Optional[WalletLedger] = None,
        promotion_repository: Optional[PromotionRepository] = None,
        application_repository: Optional[PromotionApplicationRepository] = None,
    ):
        super().__init__(db)
        self.ledger = ledger or WalletLedger(db)
        self.promotion_repository = (
            promotion_repository or RepositoryFactory.create_promotion_repository(db)
        )
        self.application_repository = (
            application_repository or RepositoryFactory.create_promotion_application_repository(db)
        )

    # Eligibility

    def ensure_applicable(self, promotion: Promotion, now: datetime) -> None:
        """
        Raise when the promotion cannot be used at ``now``.

        Raises:
            InvalidStateException: not active or not started yet
            PromotionExpiredException: past ``valid_to``
            UsageLimitExceededException: ``usage_count`` reached ``usage_limit``
        """
        now = ensure_utc(now)
        if promotion.status != PromotionStatus.ACTIVE:
            raise InvalidStateException(
                "Promotion is not active",
                code="PROMOTION_INACTIVE",
                details={"status": promotion.status.value},
            )
        if now < ensure_utc(promotion.valid_from):
            raise InvalidStateException("Promotion is not valid yet", code="PROMOTION_NOT_STARTED")
        if promotion.valid_to is not None and now > ensure_utc(promotion.valid_to):
            raise PromotionExpiredException("Promotion has expired")
        if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
            raise UsageLimitExceededException(
                "Promotion usage limit reached",
                details={"usage_limit": promotion.usage_limit},
            )

    def _reward_spec(self, promotion: Promotion) -> RewardSpec:
        try:
            return parse_rewards(promotion.rewards)
        except ValueError as exc:
            self.logger.error("Promotion %s has invalid rewards: %s", promotion.id, exc)
            raise ValidationException(
                "Promotion reward configuration is invalid", code="INVALID_PROMOTION_REWARDS"
            ) from exc

    def _ensure_conditions(self, promotion: Promotion, amount: Optional[Decimal]) -> None:
        conditions = PromotionConditions.from_raw(promotion.conditions)
        if amount is not None and not conditions.amount_matches(amount):
            raise ValidationException(
                "Amount does not meet the promotion conditions",
                code="PROMOTION_CONDITIONS_NOT_MET",
                details={
                    "min_amount": str(conditions.min_amount) if conditions.min_amount is not None else None,
                    "max_amount": str(conditions.max_amount) if conditions.max_amount is not None else None,
                },
            )

    # Quotes

    def quote_promotion(self, promotion: Promotion, amount: Decimal, now: Optional[datetime] = None) -> Quote:
        """Validate ``promotion`` for ``amount`` and return the priced quote."""
        amount = round_credits(to_decimal(amount))
        self.ensure_applicable(promotion, now or utc_now())
        self._ensure_conditions(promotion, amount)
        return quote_amount(self._reward_spec(promotion), amount)

    @BaseService.measure_operation("quote")
    def quote(self, *, code: str, amount: Decimal, now: Optional[datetime] = None) -> PromotionQuote:
        """Look a promotion up by code and price ``amount`` with it."""
        promotion = self.promotion_repository.get_by_code(code)
        if promotion is None:
            raise NotFoundException("Promotion code not found", code="PROMOTION_NOT_FOUND")
        return PromotionQuote(promotion=promotion, quote=self.quote_promotion(promotion, amount, now))

    # Applications

    @BaseService.measure_operation("apply")
    def apply(
        self,
        *,
        promotion_id: str,
        user_id: str,
        amount: Optional[Decimal] = None,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PromotionApplyResult:
        """
        Award a credit promotion to a user.

        With ``idempotency_key`` a retry returns the first result without a
        second award. Without it the ledger key is derived from promotion,
        user and award instant, so a second call at the same instant replays
        the first instead of counting a usage it does not pay.
        """
        now = ensure_utc(now or utc_now())
        amount = round_credits(to_decimal(amount)) if amount is not None else None

        with self.transaction():
            promotion = self.promotion_repository.get_for_update(promotion_id)
            if promotion is None:
                raise NotFoundException("Promotion not found", code="PROMOTION_NOT_FOUND")

            # Caller key, else the award instant; either way one ledger entry per key
            ledger_key = (
                f"promotion:{promotion_id}:{user_id}:"
                f"{idempotency_key or int(now.timestamp() * 1000)}"
            )
            existing = self.ledger.ledger_repository.get_by_idempotency_key(ledger_key)
            if existing is not None:
                if existing.user_id != user_id:
                    raise ValidationException("Idempotency key belongs to another user")
                self.logger.info(
                    "Promotion %s already applied for user %s under %s",
                    promotion_id,
                    user_id,
                    ledger_key,
                )
                return PromotionApplyResult(
                    credits_awarded=round_credits(to_decimal(existing.credits)),
                    new_balance=round_credits(to_decimal(existing.balance_after)),
                    promotion=promotion,
                    application_id=(existing.meta or {}).get("application_id"),
                    replayed=True,
                )

            self.ensure_applicable(promotion, now)
            spec = self._reward_spec(promotion)
            if is_discount(spec):
                raise ValidationException(
                    "Discount promotions are redeemed at payment time",
                    code="DISCOUNT_NOT_APPLICABLE",
                )
            if promotion.type in ONE_TIME_PROMOTION_TYPES and self.application_repository.exists_for_user(
                promotion.id, user_id
            ):
                raise AlreadyUsedException("Promotion already used by this user")
            self._ensure_conditions(promotion, amount)

            reward = compute_reward(spec, amount)
            if reward <= 0:
                raise ValidationException("Promotion reward is zero", code="ZERO_REWARD")

            application = self._record_application(
                promotion,
                user_id,
                credits_awarded=reward,
                metadata={**(metadata or {}), "amount": str(amount) if amount is not None else None},
            )
            ledger_result = self.ledger.apply_entry(
                user_id=user_id,
                entry_type=LedgerEntryType.CREDIT,
                reason=LedgerReason.PROMOTION,
                credits=reward,
                idempotency_key=ledger_key,
                metadata={
                    "promotion_id": promotion.id,
                    "promotion_type": promotion.type.value,
                    "application_id": application.id,
                },
                use_transaction=False,
            )

            self.logger.info(
                "Promotion %s (%s) applied to user %s: +%s credits",
                promotion.id,
                promotion.type.value,
                user_id,
                reward,
            )
            return PromotionApplyResult(
                credits_awarded=reward,
                new_balance=ledger_result.balance_after,
                promotion=promotion,
                application_id=application.id,
            )

    def _record_application(
        self,
        promotion: Promotion,
        user_id: str,
        *,
        credits_awarded: Decimal,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PromotionApplication:
        """Append an application and bump ``usage_count``; caller holds the promotion lock."""
        if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
            raise UsageLimitExceededException("Promotion usage limit reached")
        once_key = (
            f"{promotion.id}:{user_id}" if promotion.type in ONE_TIME_PROMOTION_TYPES else None
        )
        application = self.application_repository.create(
            promotion_id=promotion.id,
            user_id=user_id,
            credits_awarded=credits_awarded,
            once_key=once_key,
            meta={k: v for k, v in (metadata or {}).items() if v is not None} or None,
        )
        promotion.usage_count = (promotion.usage_count or 0) + 1
        self.promotion_repository.flush()
        prometheus_metrics.inc_promotion_application(promotion.type.value)
        return application

    def redeem_discount(
        self,
        promotion: Promotion,
        *,
        user_id: str,
        reservation_id: str,
        quote: Quote,
    ) -> PromotionApplication:
        """
        Record a discount used on a reservation payment.

        Runs inside the payment transaction; no credits are awarded.
        """
        application = self._record_application(
            promotion,
            user_id,
            credits_awarded=Decimal("0"),
            metadata={
                "reservation_id": reservation_id,
                "savings": str(quote.savings),
                "final_amount": str(quote.final_amount),
            },
        )
        self.logger.info(
            "Discount %s redeemed by user %s on reservation %s (saved %s)",
            promotion.id,
            user_id,
            reservation_id,
            quote.savings,
        )
        return application

    @BaseService.measure_operation("apply_usage_bonus")
    def apply_usage_bonus(
        self,
        *,
        user_id: str,
        amount: Decimal,
        reservation_id: str,
        now: Optional[datetime] = None,
        tz: Optional[pytz.BaseTzInfo] = None,
    ) -> Optional[PromotionApplyResult]:
        """
        Award the first matching USAGE_BONUS after a credit payment.

        The ledger key is derived from promotion and reservation, so a
        reservation earns a given bonus at most once. Returns None when no
        promotion matches.
        """
        now = ensure_utc(now or utc_now())
        amount = round_credits(to_decimal(amount))
        local_moment = to_local(now, tz or get_timezone(None))

        for candidate in self.promotion_repository.list_active_of_type(PromotionType.USAGE_BONUS, now):
            if candidate.usage_limit is not None and candidate.usage_count >= candidate.usage_limit:
                continue
            if not PromotionConditions.from_raw(candidate.conditions).matches(amount, local_moment):
                continue
            spec = self._reward_spec(candidate)
            if is_discount(spec):
                continue
            reward = compute_reward(spec, amount)
            if reward <= 0:
                continue
            return self._award_usage_bonus(candidate.id, user_id, reward, amount, reservation_id, now)
        return None

    def _award_usage_bonus(
        self,
        promotion_id: str,
        user_id: str,
        reward: Decimal,
        amount: Decimal,
        reservation_id: str,
        now: datetime,
    ) -> PromotionApplyResult:
        ledger_key = f"usage-bonus:{promotion_id}:{reservation_id}"
        with self.transaction():
            promotion = self.promotion_repository.get_for_update(promotion_id)
            if promotion is None:
                raise NotFoundException("Promotion not found", code="PROMOTION_NOT_FOUND")

            existing = self.ledger.ledger_repository.get_by_idempotency_key(ledger_key)
            if existing is not None:
                return PromotionApplyResult(
                    credits_awarded=round_credits(to_decimal(existing.credits)),
                    new_balance=round_credits(to_decimal(existing.balance_after)),
                    promotion=promotion,
                    replayed=True,
                )

            self.ensure_applicable(promotion, now)
            application = self._record_application(
                promotion,
                user_id,
                credits_awarded=reward,
                metadata={"reservation_id": reservation_id, "amount": str(amount)},
            )
            ledger_result = self.ledger.apply_entry(
                user_id=user_id,
                entry_type=LedgerEntryType.CREDIT,
                reason=LedgerReason.PROMOTION,
                credits=reward,
                idempotency_key=ledger_key,
                metadata={
                    "promotion_id": promotion.id,
                    "promotion_type": promotion.type.value,
                    "application_id": application.id,
                    "reservation_id": reservation_id,
                },
                use_transaction=False,
            )
            self.logger.info(
                "Usage bonus %s awarded to user %s for reservation %s: +%s",
                promotion.id,
                user_id,
                reservation_id,
                reward,
            )
            return PromotionApplyResult(
                credits_awarded=reward,
                new_balance=ledger_result.balance_after,
                promotion=promotion,
                application_id=application.id,
            )

    def history(self, user_id: str, limit: int = 100) -> List[PromotionApplication]:
        """The user's promotion applications, newest first."""
        return self.application_repository.list_for_user(user_id, limit=limit)
