# sportcenter/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .court_repository import CourtRepository
    from .payment_repository import PaymentRecordRepository
    from .promotion_repository import PromotionApplicationRepository, PromotionRepository
    from .reservation_repository import ReservationRepository
    from .user_repository import UserRepository
    from .wallet_repository import WalletLedgerRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can take optional
    repositories in their constructors and tests can swap them.
    """

    @staticmethod
    def create_court_repository(db: Session) -> "CourtRepository":
        """Create repository for courts and maintenance windows."""
        from .court_repository import CourtRepository

        return CourtRepository(db)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservation queries."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_wallet_ledger_repository(db: Session) -> "WalletLedgerRepository":
        """Create repository for wallet ledger entries."""
        from .wallet_repository import WalletLedgerRepository

        return WalletLedgerRepository(db)

    @staticmethod
    def create_promotion_repository(db: Session) -> "PromotionRepository":
        from .promotion_repository import PromotionRepository

        return PromotionRepository(db)

    @staticmethod
    def create_promotion_application_repository(db: Session) -> "PromotionApplicationRepository":
        from .promotion_repository import PromotionApplicationRepository

        return PromotionApplicationRepository(db)

    @staticmethod
    def create_payment_record_repository(db: Session) -> "PaymentRecordRepository":
        """Create repository for payment idempotency records."""
        from .payment_repository import PaymentRecordRepository

        return PaymentRecordRepository(db)
