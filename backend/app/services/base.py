# backend/app/services/base.py
"""
Common plumbing for mentoring services.

Every service holds a SQLAlchemy session, a class-named logger, a
``transaction()`` context that commits or rolls back as one unit, and the
``measure_operation`` decorator that feeds service timings into Prometheus.
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Parent of every service; owns the session and the commit boundary."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self):
        """
        Commit everything done inside the block, or nothing.

            with self.transaction():
                self.session_repository.create(...)
                self.lock_repository.delete_by_key(key)

        Database errors are rolled back and re-raised as ServiceException;
        domain exceptions are rolled back and re-raised unchanged.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.logger.error("Rolling back after database error: %s", exc)
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {exc}") from exc
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and export the result.

        Wrapped calls land in the service_operation_* histograms under
        ``operation_name``; calls slower than SLOW_OPERATION_SECONDS are
        logged at warning level.
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.perf_counter()
                failure = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    failure = type(exc).__name__
                    raise
                finally:
                    took = time.perf_counter() - started
                    if took > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            "Slow operation %s took %.2fs",
                            operation_name,
                            took,
                            extra={"operation": operation_name, "duration_seconds": took},
                        )
                    try:
                        prometheus_metrics.record_service_operation(
                            service=type(self).__name__,
                            operation=operation_name,
                            duration=took,
                            status="error" if failure else "success",
                            error_type=failure,
                        )
                    except Exception as metrics_exc:
                        logger.debug("Could not record metrics for %s: %s", operation_name, metrics_exc)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context):
        """Emit one structured info line for a completed state change."""
        self.logger.info("Operation: %s", operation, extra={"operation": operation, **context})
