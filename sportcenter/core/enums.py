# sportcenter/core/enums.py
"""
Core enums for the sports center core.

All enums persisted to the database inherit from (str, Enum) so that the
stored value is the enum VALUE.
"""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"
    PAID = "paid"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that occupy a court for conflict purposes
BLOCKING_RESERVATION_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.PAID, ReservationStatus.IN_PROGRESS}
)

RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.PAID, ReservationStatus.CANCELLED}),
    ReservationStatus.PAID: frozenset(
        {
            ReservationStatus.IN_PROGRESS,
            ReservationStatus.COMPLETED,
            ReservationStatus.CANCELLED,
            ReservationStatus.NO_SHOW,
        }
    ),
    ReservationStatus.IN_PROGRESS: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """How a reservation is paid; ONSITE is settled at the desk."""

    CREDITS = "credits"
    CARD = "card"
    FREE = "free"
    ONSITE = "onsite"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_MAINTENANCE_STATUSES = frozenset({MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS})


class LedgerEntryType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class LedgerReason(str, Enum):
    """
    Why a wallet balance changed.

    PURCHASE (shop and pass purchases) and ADJUST (desk corrections) are
    written by callers of WalletLedger.apply_entry outside the booking flow.
    """

    TOPUP = "TOPUP"
    PURCHASE = "PURCHASE"
    RESERVATION_PAYMENT = "RESERVATION_PAYMENT"
    PROMOTION = "PROMOTION"
    REFUND = "REFUND"
    ADJUST = "ADJUST"


class PromotionType(str, Enum):
    SIGNUP_BONUS = "SIGNUP_BONUS"
    RECHARGE_BONUS = "RECHARGE_BONUS"
    USAGE_BONUS = "USAGE_BONUS"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    DISCOUNT_CODE = "DISCOUNT_CODE"
    SEASONAL = "SEASONAL"


# At most one application per (promotion, user)
ONE_TIME_PROMOTION_TYPES = frozenset({PromotionType.SIGNUP_BONUS, PromotionType.REFERRAL_BONUS})


class PromotionStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    EXPIRED = "EXPIRED"
    EXHAUSTED = "EXHAUSTED"


class RewardType(str, Enum):
    FIXED_CREDITS = "FIXED_CREDITS"
    PERCENTAGE_BONUS = "PERCENTAGE_BONUS"
    DISCOUNT_PERCENTAGE = "DISCOUNT_PERCENTAGE"
    DISCOUNT_FIXED = "DISCOUNT_FIXED"


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    MAINTENANCE = "MAINTENANCE"
    USER_BOOKED = "USER_BOOKED"
    PAST = "PAST"
    UNAVAILABLE = "UNAVAILABLE"
