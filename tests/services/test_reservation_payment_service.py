# tests/services/test_reservation_payment_service.py
"""
Reservation payments: amount validation, idempotent settlement, discounts,
usage bonuses and refunds.
"""

from decimal import Decimal

import pytest

from sportcenter.core.enums import (
    LedgerReason,
    PaymentStatus,
    PromotionType,
    ReservationStatus,
)
from sportcenter.core.exceptions import (
    AmountMismatchException,
    ForbiddenException,
    IdempotencyKeyReusedException,
    InsufficientCreditsException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from sportcenter.models import PaymentRecord
from sportcenter.services.reservation_payment_service import (
    AppliedPromotion,
    ReservationPaymentProcessor,
)
from sportcenter.services.reservation_service import ReservationService
from sportcenter.services.wallet_ledger import WalletLedger


@pytest.fixture
def processor(db):
    return ReservationPaymentProcessor(db)


@pytest.fixture
def court(make_court):
    return make_court(hourly_rate=Decimal("15.00"))


def pay(processor, reservation, user, method="credits", amount="15.00", key="pay-1", **kwargs):
    return processor.process_payment(
        reservation_id=reservation.id,
        user_id=user.id,
        payment_method=method,
        amount=Decimal(amount),
        idempotency_key=key,
        **kwargs,
    )


class TestCreditsPayment:
    def test_pays_and_debits(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user)

        assert response["status"] == "paid"
        assert response["credits_used"] == "15.00"
        assert response["balance_after"] == "5.00"
        assert response["reservation_status"] == "paid"
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.PAID
        assert reservation.payment_status == PaymentStatus.PAID
        assert reservation.paid_at is not None
        assert WalletLedger(db).reconcile(user.id).consistent

    def test_insufficient_credits_leaves_everything_unchanged(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("10"))
        reservation = make_reservation(court, user)

        with pytest.raises(InsufficientCreditsException):
            pay(processor, reservation, user)

        assert WalletLedger(db).get_balance(user.id) == Decimal("10.00")
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.PENDING
        assert db.query(PaymentRecord).count() == 0

    def test_same_key_returns_same_response_without_second_debit(
        self, db, processor, court, make_user, make_reservation
    ):
        user = make_user(credits=Decimal("40"))
        reservation = make_reservation(court, user)

        first = pay(processor, reservation, user, key="retry-me")
        second = pay(processor, reservation, user, key="retry-me")

        assert second == first
        assert WalletLedger(db).get_balance(user.id) == Decimal("25.00")
        entries, _ = WalletLedger(db).list_entries(user.id)
        assert sum(1 for e in entries if e.reason == LedgerReason.RESERVATION_PAYMENT) == 1

    def test_key_reused_for_another_reservation(self, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("40"))
        first = make_reservation(court, user, start="10:00")
        other = make_reservation(court, user, start="12:00")
        pay(processor, first, user, key="shared")

        with pytest.raises(IdempotencyKeyReusedException):
            pay(processor, other, user, key="shared")

    def test_paying_twice_with_new_key_is_rejected(self, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("40"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user, key="k1")

        with pytest.raises(InvalidStateException) as exc_info:
            pay(processor, reservation, user, key="k2")
        assert exc_info.value.code == "RESERVATION_NOT_PAYABLE"

    def test_amount_tolerance_is_inclusive(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user, amount="14.99")

        assert response["credits_used"] == "14.99"
        assert WalletLedger(db).get_balance(user.id) == Decimal("5.01")

    def test_amount_mismatch(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        with pytest.raises(AmountMismatchException) as exc_info:
            pay(processor, reservation, user, amount="14.98")

        assert exc_info.value.details == {"expected": "15.00", "provided": "14.98"}
        assert WalletLedger(db).get_balance(user.id) == Decimal("20.00")

    def test_other_users_reservation(self, processor, court, make_user, make_reservation):
        owner = make_user()
        intruder = make_user(credits=Decimal("50"))
        reservation = make_reservation(court, owner)

        with pytest.raises(ForbiddenException):
            pay(processor, reservation, intruder)

    def test_unknown_reservation(self, processor, make_user):
        user = make_user()
        with pytest.raises(NotFoundException):
            processor.process_payment(
                reservation_id="01HZZZZZZZZZZZZZZZZZZZZZZZ",
                user_id=user.id,
                payment_method="credits",
                amount=Decimal("1"),
                idempotency_key="k",
            )

    @pytest.mark.parametrize(
        "method,key,amount,code",
        [
            ("bitcoin", "k", "15", "INVALID_PAYMENT_METHOD"),
            ("credits", " ", "15", "MISSING_IDEMPOTENCY_KEY"),
            ("credits", "k", "-1", "INVALID_AMOUNT"),
            ("onsite", "k", "15", "UNSUPPORTED_PAYMENT_METHOD"),
        ],
    )
    def test_rejected_requests(self, processor, court, make_user, make_reservation, method, key, amount, code):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        with pytest.raises(ValidationException) as exc_info:
            pay(processor, reservation, user, method=method, key=key, amount=amount)
        assert exc_info.value.code == code


class TestCardAndFree:
    def test_card_returns_redirect_and_changes_nothing(self, db, processor, court, make_user, make_reservation):
        user = make_user()
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user, method="card")

        assert response["status"] == "redirect"
        assert response["redirect_url"].endswith(f"?rid={reservation.id}")
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.PENDING
        assert reservation.payment_status == PaymentStatus.PENDING

    def test_free_requires_zero_price(self, processor, court, make_user, make_reservation):
        user = make_user()
        reservation = make_reservation(court, user)

        with pytest.raises(ValidationException) as exc_info:
            pay(processor, reservation, user, method="free", amount="0")
        assert exc_info.value.code == "FREE_PAYMENT_NOT_ALLOWED"

    def test_free_on_zero_priced_court(self, db, processor, make_court, make_user, make_reservation):
        court = make_court(hourly_rate=Decimal("0"))
        user = make_user()
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user, method="free", amount="0")

        assert response["status"] == "paid"
        assert response["credits_used"] is None
        assert WalletLedger(db).list_entries(user.id)[1] == 0

    def test_zero_price_must_use_free(self, processor, make_court, make_user, make_reservation):
        court = make_court(hourly_rate=Decimal("0"))
        user = make_user()
        reservation = make_reservation(court, user)

        with pytest.raises(ValidationException) as exc_info:
            pay(processor, reservation, user, amount="0")
        assert exc_info.value.code == "USE_FREE_PAYMENT"


class TestDiscounts:
    def test_discount_code_lowers_the_price(
        self, db, processor, court, make_user, make_reservation, make_promotion
    ):
        promotion = make_promotion(
            type=PromotionType.DISCOUNT_CODE,
            code="VERANO20",
            rewards={"type": "DISCOUNT_PERCENTAGE", "value": 20},
        )
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        response = pay(
            processor,
            reservation,
            user,
            amount="12.00",
            applied_promotion=AppliedPromotion(code="verano20", final_amount=Decimal("12.00")),
        )

        assert response["amount"] == "12.00"
        assert response["original_amount"] == "15.00"
        assert response["discount"] == "3.00"
        assert response["promotion_id"] == promotion.id
        assert response["balance_after"] == "8.00"
        db.refresh(promotion)
        assert promotion.usage_count == 1

    def test_client_quote_must_match_server_quote(
        self, processor, court, make_user, make_reservation, make_promotion
    ):
        promotion = make_promotion(
            type=PromotionType.DISCOUNT_CODE, rewards={"type": "DISCOUNT_FIXED", "value": 5}
        )
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        with pytest.raises(AmountMismatchException):
            pay(
                processor,
                reservation,
                user,
                amount="5.00",
                applied_promotion=AppliedPromotion(promotion_id=promotion.id, final_amount=Decimal("5.00")),
            )

    def test_full_discount_pays_free(self, db, processor, court, make_user, make_reservation, make_promotion):
        promotion = make_promotion(
            type=PromotionType.DISCOUNT_CODE, rewards={"type": "DISCOUNT_FIXED", "value": 20}
        )
        user = make_user()
        reservation = make_reservation(court, user)

        response = pay(
            processor,
            reservation,
            user,
            method="free",
            amount="0",
            applied_promotion=AppliedPromotion(promotion_id=promotion.id),
        )

        assert response["status"] == "paid"
        assert response["discount"] == "15.00"
        db.refresh(promotion)
        assert promotion.usage_count == 1

    def test_credit_promotion_cannot_be_applied_to_payment(
        self, processor, court, make_user, make_reservation, make_promotion
    ):
        promotion = make_promotion()
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        with pytest.raises(ValidationException) as exc_info:
            pay(processor, reservation, user, applied_promotion=AppliedPromotion(promotion_id=promotion.id))
        assert exc_info.value.code == "PROMOTION_NOT_DISCOUNT"

    def test_unknown_promotion_code(self, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        with pytest.raises(NotFoundException):
            pay(processor, reservation, user, applied_promotion=AppliedPromotion(code="NOPE"))


class TestUsageBonus:
    def test_credit_payment_earns_usage_bonus(
        self, db, processor, court, make_user, make_reservation, make_promotion
    ):
        make_promotion(
            type=PromotionType.USAGE_BONUS,
            rewards={"type": "PERCENTAGE_BONUS", "value": 10, "maxRewardAmount": 5},
        )
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user)

        # The payment response reports the balance right after the debit
        assert response["balance_after"] == "5.00"
        ledger = WalletLedger(db)
        assert ledger.get_balance(user.id) == Decimal("6.50")
        latest = ledger.list_entries(user.id)[0][0]
        assert latest.reason == LedgerReason.PROMOTION
        assert latest.credits == Decimal("1.50")
        assert latest.idempotency_key == f"usage-bonus:{latest.meta['promotion_id']}:{reservation.id}"
        assert ledger.reconcile(user.id).consistent

    def test_broken_bonus_does_not_undo_payment(
        self, db, processor, court, make_user, make_reservation, make_promotion
    ):
        make_promotion(type=PromotionType.USAGE_BONUS, rewards={"type": "MYSTERY", "value": 1})
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)

        response = pay(processor, reservation, user)

        assert response["status"] == "paid"
        assert WalletLedger(db).get_balance(user.id) == Decimal("5.00")
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.PAID


class TestRefund:
    def test_refund_restores_credits_and_cancels(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user)

        result = processor.refund_reservation(reservation.id, reason="rain", actor_id=user.id)

        assert result["refunded_credits"] == Decimal("15.00")
        assert result["balance_after"] == Decimal("20.00")
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.payment_status == PaymentStatus.REFUNDED
        assert reservation.cancellation_reason == "rain"
        assert WalletLedger(db).reconcile(user.id).consistent

    def test_refund_uses_amount_actually_paid(self, db, processor, court, make_user, make_reservation, make_promotion):
        make_promotion(
            type=PromotionType.DISCOUNT_CODE, code="HALF", rewards={"type": "DISCOUNT_PERCENTAGE", "value": 50}
        )
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user, amount="7.50", applied_promotion=AppliedPromotion(code="HALF"))

        result = processor.refund_reservation(reservation.id)

        assert result["refunded_credits"] == Decimal("7.50")
        assert WalletLedger(db).get_balance(user.id) == Decimal("20.00")

    def test_refund_only_once(self, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user)
        processor.refund_reservation(reservation.id)

        with pytest.raises(InvalidStateException) as exc_info:
            processor.refund_reservation(reservation.id)
        assert exc_info.value.code == "NOT_REFUNDABLE"

    def test_refund_more_than_paid(self, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user)

        with pytest.raises(ValidationException) as exc_info:
            processor.refund_reservation(reservation.id, amount=Decimal("15.01"))
        assert exc_info.value.code == "INVALID_REFUND_AMOUNT"

    def test_unpaid_reservation_is_not_refundable(self, processor, court, make_user, make_reservation):
        user = make_user()
        reservation = make_reservation(court, user)

        with pytest.raises(InvalidStateException):
            processor.refund_reservation(reservation.id)

    def test_completed_reservation_is_not_refundable(self, db, processor, court, make_user, make_reservation):
        user = make_user(credits=Decimal("20"))
        reservation = make_reservation(court, user)
        pay(processor, reservation, user)
        ReservationService(db).transition(reservation.id, ReservationStatus.COMPLETED)

        with pytest.raises(InvalidStateException) as exc_info:
            processor.refund_reservation(reservation.id)

        assert exc_info.value.code == "INVALID_TRANSITION"
        assert WalletLedger(db).get_balance(user.id) == Decimal("5.00")
        db.refresh(reservation)
        assert reservation.status == ReservationStatus.COMPLETED
