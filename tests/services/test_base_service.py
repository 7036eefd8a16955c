"""Unit-of-work and timing behaviour shared by every service."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from sportcenter.core.exceptions import ServiceException, ValidationException
from sportcenter.models import User
from sportcenter.services.base import BaseService


class ProbeService(BaseService):
    @BaseService.measure_operation("probe")
    def probe(self, fail: bool = False) -> str:
        if fail:
            raise ValidationException("nope")
        return "ok"


class TestTransaction:
    def test_commits_on_success(self, db):
        service = ProbeService(db)
        with service.transaction():
            db.add(User(email="tx@example.com", name="Tx"))
        db.expunge_all()
        assert db.query(User).filter_by(email="tx@example.com").count() == 1

    def test_domain_error_rolls_back_and_propagates(self, db):
        service = ProbeService(db)
        with pytest.raises(ValidationException):
            with service.transaction():
                db.add(User(email="gone@example.com", name="Gone", credits_balance=Decimal("0")))
                db.flush()
                raise ValidationException("abort")
        assert db.query(User).filter_by(email="gone@example.com").count() == 0

    def test_database_error_becomes_service_exception(self, db):
        service = ProbeService(db)
        with pytest.raises(ServiceException) as exc_info:
            with service.transaction():
                raise OperationalError("SELECT 1", {}, Exception("connection lost"))
        assert exc_info.value.code == "SERVICE_ERROR"


class TestMeasureOperation:
    def test_records_successes_and_failures(self, db):
        service = ProbeService(db)
        service.probe()
        with pytest.raises(ValidationException):
            service.probe(fail=True)

        stats = service.get_metrics()["probe"]
        assert stats["count"] >= 2
        assert stats["success_count"] >= 1
        assert stats["failure_count"] >= 1
        assert 0.0 < stats["success_rate"] < 1.0

    def test_wrapper_keeps_the_operation_name(self):
        assert ProbeService.probe._operation_name == "probe"
        assert ProbeService.probe.__name__ == "probe"
