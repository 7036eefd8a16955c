# sportcenter/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import availability, promotions, reservations, wallet

__all__ = [
    "availability",
    "promotions",
    "reservations",
    "wallet",
]
