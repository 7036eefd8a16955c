"""
Database models for the sports center core.

- Centers and courts (schedule configuration, sport capabilities)
- Maintenance windows
- Reservations and payment records
- Users, wallet ledger entries
- Promotions and their applications
"""

from .center import Center, Court
from .maintenance import MaintenanceWindow
from .payment import PaymentRecord
from .promotion import Promotion, PromotionApplication
from .reservation import Reservation
from .user import User
from .wallet import WalletLedgerEntry

__all__ = [
    "Center",
    "Court",
    "MaintenanceWindow",
    "PaymentRecord",
    "Promotion",
    "PromotionApplication",
    "Reservation",
    "User",
    "WalletLedgerEntry",
]
