"""
FastAPI dependencies: database session, caller identity and services.
"""

from .auth import get_current_user, get_current_user_id_optional
from .database import get_db
from .services import (
    get_availability_service,
    get_payment_processor,
    get_promotion_engine,
    get_reservation_service,
    get_wallet_ledger,
)

__all__ = [
    "get_availability_service",
    "get_current_user",
    "get_current_user_id_optional",
    "get_db",
    "get_payment_processor",
    "get_promotion_engine",
    "get_reservation_service",
    "get_wallet_ledger",
]
