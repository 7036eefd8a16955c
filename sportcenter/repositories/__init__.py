"""
Repository Pattern Implementation

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- CourtRepository: Courts, court row locks and maintenance windows
- ReservationRepository: Overlap queries and reservation locks
- WalletLedgerRepository: Ledger reads, idempotency lookups, reconciliation sums
- PromotionRepository / PromotionApplicationRepository: Promotions and their history
- PaymentRecordRepository: Payment idempotency records

Usage:
    from sportcenter.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_reservation_repository(db)
    reservations = repository.get_blocking_reservations(court_id, start, end)
"""

from .base_repository import BaseRepository
from .court_repository import CourtRepository
from .factory import RepositoryFactory
from .payment_repository import PaymentRecordRepository
from .promotion_repository import PromotionApplicationRepository, PromotionRepository
from .reservation_repository import ReservationRepository
from .user_repository import UserRepository
from .wallet_repository import WalletLedgerRepository

__all__ = [
    "BaseRepository",
    "CourtRepository",
    "PaymentRecordRepository",
    "PromotionApplicationRepository",
    "PromotionRepository",
    "RepositoryFactory",
    "ReservationRepository",
    "UserRepository",
    "WalletLedgerRepository",
]
