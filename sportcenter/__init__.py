"""Sports center booking core: availability, reservations, wallet ledger and promotions."""

__version__ = "1.0.0"
