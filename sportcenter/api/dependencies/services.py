"""
Service layer dependencies for dependency injection.

Each request gets services bound to its own database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.promotion_service import PromotionEngine
from ...services.reservation_payment_service import ReservationPaymentProcessor
from ...services.reservation_service import ReservationService
from ...services.wallet_ledger import WalletLedger
from .database import get_db


def get_wallet_ledger(db: Session = Depends(get_db)) -> WalletLedger:
    return WalletLedger(db)


def get_promotion_engine(db: Session = Depends(get_db)) -> PromotionEngine:
    return PromotionEngine(db)


def get_payment_processor(db: Session = Depends(get_db)) -> ReservationPaymentProcessor:
    return ReservationPaymentProcessor(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_reservation_service(db: Session = Depends(get_db)) -> ReservationService:
    """Reservation service sharing one session with its payment processor."""
    return ReservationService(db, payment_processor=ReservationPaymentProcessor(db))
