# backend/gymbook/services/base.py
"""
Base Service Pattern

Every gymbook service owns one SQLAlchemy session and gets:
- transaction(): commit on success, rollback on any error
- log_operation(): structured info line per state change
- measure_operation(): timing into Prometheus plus a slow-operation warning
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Base class for the booking, calendar, member, finance and content services."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Domain exceptions raised inside the block roll back and propagate
        unchanged; database errors are wrapped in ServiceException so driver
        text never reaches a client.

        Usage:
            with self.transaction():
                self.repository.create(...)
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception as e:
            self.logger.debug(f"Rolling back transaction: {type(e).__name__}")
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, member, class_id):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.time()
                error_type = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    self._finish_measure(operation_name, start_time, error_type)

            return cast(F, wrapper)

        return decorator

    def _finish_measure(
        self, operation_name: str, start_time: float, error_type: Optional[str]
    ) -> None:
        elapsed = time.time() - start_time

        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

        try:
            prometheus_metrics.record_service_operation(
                service=self.__class__.__name__,
                operation=operation_name,
                duration=elapsed,
                status="success" if error_type is None else "error",
                error_type=error_type,
            )
        except ValueError:
            self.logger.debug("Metric labels rejected for %s", operation_name, exc_info=True)

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with its context as structured extras."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
