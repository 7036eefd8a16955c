# sportcenter/services/reservation_payment_service.py
"""
Reservation Payment Processor

Validates a payment request against the reservation's state and price and
settles it in one transaction:

- CREDITS: debit through the WalletLedger and mark the reservation paid
- FREE: mark paid without touching the ledger (zero-cost only)
- CARD: hand back a redirect to the external processor; nothing changes
  until its confirmation arrives

Each processed request is stored as a PaymentRecord under the caller's
idempotency key, and a retry with the same key gets the stored response back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import (
    RESERVATION_TRANSITIONS,
    LedgerEntryType,
    LedgerReason,
    PaymentMethod,
    PaymentStatus,
    ReservationStatus,
)
from ..core.exceptions import (
    AmountMismatchException,
    DomainException,
    ForbiddenException,
    IdempotencyKeyReusedException,
    InvalidStateException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, get_center_timezone, utc_now
from ..domain.rewards import Quote, round_credits, to_decimal
from ..models.promotion import Promotion
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.payment_repository import PaymentRecordRepository
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService
from .promotion_service import PromotionEngine
from .wallet_ledger import WalletLedger

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class AppliedPromotion:
    """A promotion the client priced the reservation with."""

    promotion_id: Optional[str] = None
    code: Optional[str] = None
    final_amount: Optional[Decimal] = None


def _money(value: Optional[Decimal]) -> Optional[str]:
    return str(round_credits(to_decimal(value))) if value is not None else None


class ReservationPaymentProcessor(BaseService):
    def __init__(
        self,
        db: Session,
        ledger: Optional[WalletLedger] = None,
        promotion_engine: Optional[PromotionEngine] = None,
        reservation_repository: Optional[ReservationRepository] = None,
        payment_repository: Optional[PaymentRecordRepository] = None,
    ):
        super().__init__(db)
        self.ledger = ledger or WalletLedger(db)
        self.promotion_engine = promotion_engine or PromotionEngine(db, ledger=self.ledger)
        self.reservation_repository = (
            reservation_repository or RepositoryFactory.create_reservation_repository(db)
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_record_repository(db)
        )

    @BaseService.measure_operation("process_payment")
    def process_payment(
        self,
        *,
        reservation_id: str,
        user_id: str,
        payment_method: PaymentMethod | str,
        amount: Decimal,
        idempotency_key: str,
        applied_promotion: Optional[AppliedPromotion] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Pay a pending reservation.

        Returns the JSON-safe payment response (money as strings). The same
        idempotency key always returns the same response.

        Raises:
            NotFoundException: unknown reservation or promotion
            ForbiddenException: reservation belongs to another user
            InvalidStateException: reservation not pending or already paid
            AmountMismatchException: amount differs from the expected price
            InsufficientCreditsException: CREDITS debit larger than the balance
            IdempotencyKeyReusedException: key used for another reservation
        """
        now = ensure_utc(now or utc_now())
        if not idempotency_key or not idempotency_key.strip():
            raise ValidationException("An idempotency key is required", code="MISSING_IDEMPOTENCY_KEY")
        try:
            method = PaymentMethod(payment_method)
        except ValueError as exc:
            raise ValidationException(
                f"Unknown payment method: {payment_method}", code="INVALID_PAYMENT_METHOD"
            ) from exc
        provided = round_credits(to_decimal(amount))
        if provided < 0:
            raise ValidationException("Amount cannot be negative", code="INVALID_AMOUNT")

        with self.transaction():
            response, replayed = self._process(
                reservation_id=reservation_id,
                user_id=user_id,
                method=method,
                provided=provided,
                idempotency_key=idempotency_key,
                applied_promotion=applied_promotion,
                now=now,
            )

        if not replayed:
            prometheus_metrics.inc_payment(method.value, response["status"])
        if method == PaymentMethod.CREDITS and not replayed:
            self._award_usage_bonus(reservation_id, user_id, provided, now)
        return response

    def _process(
        self,
        *,
        reservation_id: str,
        user_id: str,
        method: PaymentMethod,
        provided: Decimal,
        idempotency_key: str,
        applied_promotion: Optional[AppliedPromotion],
        now: datetime,
    ) -> Tuple[Dict[str, Any], bool]:
        reservation = self.reservation_repository.get_for_update(reservation_id)
        if reservation is None:
            raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")

        record = self.payment_repository.get_by_idempotency_key(idempotency_key)
        if record is not None:
            if record.reservation_id != reservation_id or record.user_id != user_id:
                raise IdempotencyKeyReusedException(
                    "This idempotency key was already used for another payment",
                    details={"idempotency_key": idempotency_key},
                )
            self.logger.info(
                "Payment replay for reservation %s (key %s)", reservation_id, idempotency_key
            )
            return dict(record.response), True

        if reservation.user_id != user_id:
            raise ForbiddenException("You can only pay your own reservations")
        if (
            reservation.status != ReservationStatus.PENDING
            or reservation.payment_status == PaymentStatus.PAID
        ):
            raise InvalidStateException(
                "Reservation is not awaiting payment",
                code="RESERVATION_NOT_PAYABLE",
                details={
                    "status": reservation.status.value,
                    "payment_status": reservation.payment_status.value,
                },
            )
        if method == PaymentMethod.ONSITE:
            raise ValidationException(
                "On-site payments are settled at the front desk", code="UNSUPPORTED_PAYMENT_METHOD"
            )

        base_price = round_credits(to_decimal(reservation.total_price))
        promotion: Optional[Promotion] = None
        quote: Optional[Quote] = None
        expected = base_price
        if applied_promotion is not None:
            promotion, quote = self._quote_applied_promotion(applied_promotion, base_price, now)
            expected = quote.final_amount

        self._validate_amount(method, provided, expected, quote, base_price)

        response: Dict[str, Any] = {
            "reservation_id": reservation.id,
            "payment_method": method.value,
            "amount": _money(provided),
            "original_amount": _money(base_price),
            "discount": _money(quote.savings) if quote is not None else None,
            "promotion_id": promotion.id if promotion is not None else None,
            "credits_used": None,
            "balance_after": None,
            "redirect_url": None,
        }

        if method == PaymentMethod.CARD:
            response["status"] = "redirect"
            response["redirect_url"] = f"{settings.card_redirect_base_url}?rid={reservation.id}"
            self.logger.info(
                "Card payment for reservation %s handed to the external processor", reservation.id
            )
        else:
            if method == PaymentMethod.CREDITS:
                ledger_result = self.ledger.apply_entry(
                    user_id=user_id,
                    entry_type=LedgerEntryType.DEBIT,
                    reason=LedgerReason.RESERVATION_PAYMENT,
                    credits=provided,
                    idempotency_key=f"reservation-payment:{idempotency_key}",
                    metadata={
                        "reservation_id": reservation.id,
                        "promotion_id": promotion.id if promotion is not None else None,
                    },
                    use_transaction=False,
                )
                response["credits_used"] = _money(provided)
                response["balance_after"] = _money(ledger_result.balance_after)

            self._mark_paid(reservation, method, now)
            if promotion is not None and quote is not None:
                self.promotion_engine.redeem_discount(
                    promotion, user_id=user_id, reservation_id=reservation.id, quote=quote
                )
            response["status"] = "paid"
            self.logger.info(
                "Reservation %s paid by user %s with %s (%s)",
                reservation.id,
                user_id,
                method.value,
                provided,
            )

        response["reservation_status"] = reservation.status.value
        response["payment_status"] = reservation.payment_status.value

        self.payment_repository.create(
            reservation_id=reservation.id,
            user_id=user_id,
            idempotency_key=idempotency_key,
            payment_method=method,
            amount=provided,
            status=response["status"],
            response=response,
        )
        return response, False

    def _quote_applied_promotion(
        self, applied: AppliedPromotion, base_price: Decimal, now: datetime
    ) -> Tuple[Promotion, Quote]:
        """Recompute the client's promotion quote under the promotion row lock."""
        promotion_id = applied.promotion_id
        if promotion_id is None and applied.code:
            by_code = self.promotion_engine.promotion_repository.get_by_code(applied.code)
            promotion_id = by_code.id if by_code is not None else None
        promotion = (
            self.promotion_engine.promotion_repository.get_for_update(promotion_id)
            if promotion_id
            else None
        )
        if promotion is None:
            raise NotFoundException("Promotion not found", code="PROMOTION_NOT_FOUND")

        quote = self.promotion_engine.quote_promotion(promotion, base_price, now)
        if not quote.is_discount:
            raise ValidationException(
                "Only discount promotions can be applied to a payment",
                code="PROMOTION_NOT_DISCOUNT",
            )
        if applied.final_amount is not None:
            client_final = round_credits(to_decimal(applied.final_amount))
            if abs(client_final - quote.final_amount) > settings.amount_tolerance:
                raise AmountMismatchException(expected=quote.final_amount, provided=client_final)
        return promotion, quote

    def _validate_amount(
        self,
        method: PaymentMethod,
        provided: Decimal,
        expected: Decimal,
        quote: Optional[Quote],
        base_price: Decimal,
    ) -> None:
        if method == PaymentMethod.FREE:
            if expected != ZERO or (quote is None and base_price != ZERO):
                raise ValidationException(
                    "Free payments need a promotion that brings the price to zero",
                    code="FREE_PAYMENT_NOT_ALLOWED",
                    details={"expected": str(expected)},
                )
            if provided != ZERO:
                raise AmountMismatchException(expected=ZERO, provided=provided)
            return

        if abs(provided - expected) > settings.amount_tolerance:
            self.logger.warning("Payment amount mismatch: expected %s, provided %s", expected, provided)
            raise AmountMismatchException(expected=expected, provided=provided)
        if expected == ZERO:
            raise ValidationException(
                "Zero-cost reservations must use the free payment method",
                code="USE_FREE_PAYMENT",
            )

    def _mark_paid(self, reservation: Reservation, method: PaymentMethod, now: datetime) -> None:
        reservation.status = ReservationStatus.PAID
        reservation.payment_status = PaymentStatus.PAID
        reservation.payment_method = method
        reservation.paid_at = now
        self.reservation_repository.flush()

    def _award_usage_bonus(
        self, reservation_id: str, user_id: str, amount: Decimal, now: datetime
    ) -> None:
        """Cashback runs after the payment committed; a failure never undoes it."""
        try:
            reservation = self.reservation_repository.get_by_id(reservation_id)
            tz = (
                get_center_timezone(reservation.court.center)
                if reservation is not None
                else None
            )
            result = self.promotion_engine.apply_usage_bonus(
                user_id=user_id,
                amount=amount,
                reservation_id=reservation_id,
                now=now,
                tz=tz,
            )
            if result is not None:
                self.logger.info(
                    "Usage bonus %s for reservation %s: +%s",
                    result.promotion.id,
                    reservation_id,
                    result.credits_awarded,
                )
        except (DomainException, RepositoryException, SQLAlchemyError) as exc:
            self.db.rollback()
            self.logger.warning(
                "Usage bonus for reservation %s failed: %s", reservation_id, exc, exc_info=True
            )

    @BaseService.measure_operation("refund_reservation")
    def refund_reservation(
        self,
        reservation_id: str,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Return the credits of a credit-paid reservation and cancel it.

        The ledger key is derived from the reservation, so a reservation is
        refunded at most once.
        """
        now = ensure_utc(now or utc_now())
        with self.transaction():
            reservation = self.reservation_repository.get_for_update(reservation_id)
            if reservation is None:
                raise NotFoundException("Reservation not found", code="RESERVATION_NOT_FOUND")
            if (
                reservation.payment_status != PaymentStatus.PAID
                or reservation.payment_method != PaymentMethod.CREDITS
            ):
                raise InvalidStateException(
                    "Only reservations paid with credits can be refunded",
                    code="NOT_REFUNDABLE",
                    details={"payment_status": reservation.payment_status.value},
                )
            if ReservationStatus.CANCELLED not in RESERVATION_TRANSITIONS[reservation.status]:
                raise InvalidStateException(
                    f"A {reservation.status.value} reservation can no longer be cancelled",
                    code="INVALID_TRANSITION",
                    details={
                        "from": reservation.status.value,
                        "to": ReservationStatus.CANCELLED.value,
                    },
                )

            settled =self.payment_repository.get_settled_for_reservation(reservation.id)
            paid_amount = round_credits(
                to_decimal(settled.amount if settled is not None else reservation.total_price)
            )
            refund = round_credits(to_decimal(amount)) if amount is not None else paid_amount
            if refund <= 0 or refund > paid_amount:
                raise ValidationException(
                    "Refund amount must be positive and at most the amount paid",
                    code="INVALID_REFUND_AMOUNT",
                    details={"paid": str(paid_amount), "requested": str(refund)},
                )

            ledger_result = self.ledger.apply_entry(
                user_id=reservation.user_id,
                entry_type=LedgerEntryType.CREDIT,
                reason=LedgerReason.REFUND,
                credits=refund,
                idempotency_key=f"reservation-refund:{reservation.id}",
                metadata={"reservation_id": reservation.id, "reason": reason, "actor_id": actor_id},
                use_transaction=False,
            )
            reservation.payment_status = PaymentStatus.REFUNDED
            reservation.status = ReservationStatus.CANCELLED
            reservation.cancelled_at = now
            reservation.cancellation_reason = reason
            self.reservation_repository.flush()

            self.logger.info(
                "Refunded %s credits to user %s for reservation %s (actor %s)",
                refund,
                reservation.user_id,
                reservation.id,
                actor_id,
            )
            return {
                "reservation_id": reservation.id,
                "refunded_credits": refund,
                "balance_after": ledger_result.balance_after,
            }
