"""
Service layer: business operations over a request-scoped session.

- AvailabilityService: slot availability per court and date
- ReservationService: pending reservations and their lifecycle
- ReservationPaymentProcessor: payments and refunds
- PromotionEngine: promotion eligibility, rewards and quotes
- WalletLedger: the credit ledger and user balances
"""
