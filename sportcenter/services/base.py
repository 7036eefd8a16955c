# sportcenter/services/base.py
"""
Base Service for the sports center core.

Services own the unit of work. Repositories only flush; the service wraps a
business operation in ``transaction()`` so it either commits completely or
leaves nothing behind. Operations that must join a caller's unit of work take
``use_transaction=False`` and run without opening their own.
"""

from contextlib import contextmanager
from dataclasses import asdict, dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, ClassVar, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_time: float = 0.0
    max_time: float = 0.0

    def record(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        if success:
            self.success_count += 1
        else:
            self.failure_count += 1

    def summary(self) -> Dict[str, float]:
        data: Dict[str, float] = asdict(self)
        data["avg_time"] = self.total_time / self.count if self.count else 0.0
        data["success_rate"] = self.success_count / self.count if self.count else 0.0
        return data


class BaseService:
    """Session holder with transaction handling and operation timing."""

    # service class name -> operation -> stats
    _operation_stats: ClassVar[Dict[str, Dict[str, OperationStats]]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the enclosed work, or roll all of it back.

        SQLAlchemy errors surface as ServiceException; domain exceptions are
        re-raised unchanged after the rollback.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Database error, transaction rolled back: %s", exc)
            raise ServiceException(f"Database operation failed: {exc}") from exc
        except Exception as exc:
            self.db.rollback()
            self.logger.debug("Transaction rolled back on %s: %s", type(exc).__name__, exc)
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and report it to the service metrics.

            @BaseService.measure_operation("apply_entry")
            def apply_entry(self, ...): ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    error_type = type(exc).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    self._record_operation(operation_name, elapsed, error_type is None)
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            "Slow operation: %s.%s took %.2fs",
                            self.__class__.__name__,
                            operation_name,
                            elapsed,
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if error_type is None else "error",
                        error_type=error_type,
                    )

            setattr(wrapper, "_operation_name", operation_name)
            return cast(F, wrapper)

        return decorator

    def _record_operation(self, operation: str, elapsed: float, success: bool) -> None:
        per_service = BaseService._operation_stats.setdefault(self.__class__.__name__, {})
        per_service.setdefault(operation, OperationStats()).record(elapsed, success)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Timing stats recorded for this service class, keyed by operation."""
        per_service = BaseService._operation_stats.get(self.__class__.__name__, {})
        return {operation: stats.summary() for operation, stats in per_service.items()}
