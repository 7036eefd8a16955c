# tests/repositories/test_repositories.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sportcenter.core.enums import (
    LedgerEntryType,
    LedgerReason,
    MaintenanceStatus,
    PromotionStatus,
    PromotionType,
    ReservationStatus,
)
from sportcenter.repositories.factory import RepositoryFactory
from sportcenter.services.reservation_service import ReservationService
from sportcenter.services.wallet_ledger import WalletLedger
from tests.helpers import FUTURE_DAY, local_dt

NOW = datetime(2030, 6, 3, 10, 0, tzinfo=timezone.utc)


class TestReservationRepository:
    def test_blocking_reservations_ignore_cancelled_and_touching(self, db, make_court, make_user, make_reservation):
        court = make_court()
        user = make_user()
        kept = make_reservation(court, user, start="10:00")
        make_reservation(court, user, start="11:00")
        cancelled = make_reservation(court, user, start="12:00", minutes=30)
        ReservationService(db).transition(cancelled.id, ReservationStatus.CANCELLED)

        repo = RepositoryFactory.create_reservation_repository(db)
        found = repo.get_blocking_reservations(
            court.id, local_dt(FUTURE_DAY, "09:00"), local_dt(FUTURE_DAY, "11:00")
        )
        assert [r.id for r in found] == [kept.id]

        found = repo.get_blocking_reservations(
            court.id, local_dt(FUTURE_DAY, "09:00"), local_dt(FUTURE_DAY, "13:00"), exclude_reservation_id=kept.id
        )
        assert len(found) == 1


class TestCourtRepository:
    def test_active_maintenance_overlap(self, db, make_court, make_maintenance):
        court = make_court()
        early = make_maintenance(court, local_dt(FUTURE_DAY, "08:00"), minutes=120)
        make_maintenance(court, local_dt(FUTURE_DAY, "12:00"), status=MaintenanceStatus.CANCELLED)
        make_maintenance(court, local_dt(FUTURE_DAY, "14:00"))

        repo = RepositoryFactory.create_court_repository(db)
        found = repo.get_active_maintenance(court.id, local_dt(FUTURE_DAY, "09:30"), local_dt(FUTURE_DAY, "14:00"))

        assert [w.id for w in found] == [early.id]

    def test_get_with_center(self, db, make_court):
        court = make_court()
        loaded = RepositoryFactory.create_court_repository(db).get_with_center(court.id)
        assert loaded.center.timezone == "Europe/Madrid"


class TestPromotionRepository:
    def test_code_lookup_is_case_insensitive(self, db, make_promotion):
        promotion = make_promotion(code="Verano")
        repo = RepositoryFactory.create_promotion_repository(db)
        assert repo.get_by_code(" VERANO ").id == promotion.id
        assert repo.get_by_code("invierno") is None

    def test_active_of_type_respects_window_and_status(self, db, make_promotion):
        current = make_promotion(type=PromotionType.USAGE_BONUS)
        make_promotion(type=PromotionType.USAGE_BONUS, status=PromotionStatus.PAUSED)
        make_promotion(type=PromotionType.USAGE_BONUS, valid_to=NOW - timedelta(days=1))
        make_promotion(type=PromotionType.USAGE_BONUS, valid_from=NOW + timedelta(days=1))
        make_promotion(type=PromotionType.SEASONAL)

        found = RepositoryFactory.create_promotion_repository(db).list_active_of_type(PromotionType.USAGE_BONUS, NOW)

        assert [p.id for p in found] == [current.id]


class TestWalletLedgerRepository:
    def test_signed_sum(self, db, make_user):
        user = make_user(credits=Decimal("20"))
        WalletLedger(db).apply_entry(
            user_id=user.id,
            entry_type=LedgerEntryType.DEBIT,
            reason=LedgerReason.PURCHASE,
            credits=Decimal("7.25"),
            idempotency_key="shop-1",
        )

        repo = RepositoryFactory.create_wallet_ledger_repository(db)
        assert repo.sum_signed_credits(user.id) == Decimal("12.75")
        assert repo.get_latest_for_user(user.id).balance_after == Decimal("12.75")
        assert repo.sum_signed_credits("nobody") == Decimal("0.00")
