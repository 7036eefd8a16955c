# tests/conftest.py
"""
Pytest configuration.

Every test gets its own in-memory SQLite database (one shared connection via
StaticPool so the TestClient threads see the same data). Settings are pinned
to the test environment before any sportcenter import.
"""

import os

# Set the environment BEFORE any sportcenter imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEFAULT_TIMEZONE"] = "Europe/Madrid"

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sportcenter.api.dependencies.database import get_db
from sportcenter.core.enums import MaintenanceStatus, PromotionStatus, PromotionType
from sportcenter.database import Base, init_db
from sportcenter.main import app
from sportcenter.models import Center, Court, MaintenanceWindow, Promotion, User
from sportcenter.services.wallet_ledger import WalletLedger
from tests.helpers import OPEN_EVERY_DAY


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine, "connect", _enable_foreign_keys)
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    """A fresh session per test; tables are dropped with the engine."""
    TestSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Don't use context manager - create directly
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_center(db: Session):
    def _make(settings: Optional[Dict[str, Any]] = None, tz: Optional[str] = "Europe/Madrid") -> Center:
        center = Center(
            name="Centro Deportivo",
            timezone=tz,
            settings=OPEN_EVERY_DAY if settings is None else settings,
        )
        db.add(center)
        db.commit()
        return center

    return _make


@pytest.fixture
def make_court(db: Session, make_center):
    def _make(
        center: Optional[Center] = None,
        *,
        primary_sport: str = "Fútbol",
        allowed_sports: Optional[List[str]] = None,
        is_multiuse: Optional[bool] = None,
        is_active: bool = True,
        hourly_rate: Decimal = Decimal("15.00"),
    ) -> Court:
        center = center or make_center()
        allowed = allowed_sports or []
        court = Court(
            center_id=center.id,
            name="Pista 1",
            primary_sport=primary_sport,
            allowed_sports=allowed,
            is_multiuse=bool(allowed) if is_multiuse is None else is_multiuse,
            is_active=is_active,
            hourly_rate=hourly_rate,
        )
        db.add(court)
        db.commit()
        return court

    return _make


@pytest.fixture
def multiuse_court(make_court) -> Court:
    """Fútbol primary; Voleibol and Básquet share the court among themselves."""
    return make_court(primary_sport="Fútbol", allowed_sports=["Voleibol", "Básquet"])


@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def _make(credits: Decimal = Decimal("0")) -> User:
        counter["n"] += 1
        user = User(email=f"player{counter['n']}@example.com", name=f"Player {counter['n']}")
        db.add(user)
        db.commit()
        if credits > 0:
            WalletLedger(db).top_up(
                user_id=user.id, credits=credits, idempotency_key=f"seed-topup:{user.id}"
            )
        return user

    return _make


@pytest.fixture
def make_promotion(db: Session):
    def _make(
        *,
        type: PromotionType = PromotionType.SEASONAL,
        rewards: Optional[Dict[str, Any]] = None,
        conditions: Optional[Dict[str, Any]] = None,
        status: PromotionStatus = PromotionStatus.ACTIVE,
        code: Optional[str] = None,
        valid_from: Optional[datetime] = None,
        valid_to: Optional[datetime] = None,
        usage_limit: Optional[int] = None,
        usage_count: int = 0,
    ) -> Promotion:
        promotion = Promotion(
            name=f"{type.value} promotion",
            code=code,
            type=type,
            status=status,
            valid_from=valid_from or datetime(2020, 1, 1, tzinfo=timezone.utc),
            valid_to=valid_to,
            usage_limit=usage_limit,
            usage_count=usage_count,
            rewards=rewards or {"type": "FIXED_CREDITS", "value": 5},
            conditions=conditions,
        )
        db.add(promotion)
        db.commit()
        return promotion

    return _make


@pytest.fixture
def make_maintenance(db: Session):
    def _make(
        court: Court,
        start: datetime,
        minutes: int = 60,
        status: MaintenanceStatus = MaintenanceStatus.SCHEDULED,
    ) -> MaintenanceWindow:
        window = MaintenanceWindow(
            court_id=court.id,
            scheduled_at=start,
            duration_minutes=minutes,
            status=status,
            description="Resurfacing",
        )
        db.add(window)
        db.commit()
        return window

    return _make


@pytest.fixture
def make_reservation(db: Session):
    """Create a PENDING reservation through the service, as a client would."""
    from datetime import timedelta

    from sportcenter.services.reservation_service import ReservationService
    from tests.helpers import FUTURE_DAY, local_dt

    def _make(
        court: Court,
        user: User,
        start: str = "18:00",
        minutes: int = 60,
        sport: Optional[str] = None,
        day=FUTURE_DAY,
    ):
        begins = local_dt(day, start)
        return ReservationService(db).create_pending(
            court_id=court.id,
            user_id=user.id,
            sport=sport or court.primary_sport,
            start_time=begins,
            end_time=begins + timedelta(minutes=minutes),
        )

    return _make
