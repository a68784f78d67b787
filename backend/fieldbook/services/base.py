# backend/fieldbook/services/base.py
"""
Base Service Pattern for the Fieldbook platform

Provides common functionality for all service classes including:
- Transaction management
- Logging
- Error handling
- Performance monitoring
"""

from contextlib import contextmanager
from functools import wraps
import inspect
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Logging
    - Transaction handling
    - Performance monitoring
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def __init__(self, db: Session):
        """
        Initialize base service.

        Args:
            db: Database session
        """
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                self.db.add(entity)
                # commit is handled automatically
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception as e:
            self.logger.error(f"Unexpected error in transaction: {str(e)}")
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Works on both sync and async methods.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, data):
                ...
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]

            if not inspect.iscoroutinefunction(func):

                @wraps(func)
                def wrapper(self, *args, **kwargs):
                    start_time = time.time()
                    success = False
                    error_type = None
                    try:
                        result = func(self, *args, **kwargs)
                        success = True
                        return result
                    except Exception as e:
                        error_type = type(e).__name__
                        raise
                    finally:
                        _finish_measurement(
                            self, operation_name, time.time() - start_time, success, error_type
                        )

                return cast(F, wrapper)

            @wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                start_time = time.time()
                success = False
                error_type = None
                try:
                    result = await func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    _finish_measurement(
                        self, operation_name, time.time() - start_time, success, error_type
                    )

            return cast(F, async_wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        class_name = self.__class__.__name__
        metrics = BaseService._class_metrics.setdefault(class_name, {})
        metric_data = metrics.setdefault(
            operation,
            {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "min_time": float("inf"),
                "max_time": 0.0,
            },
        )
        metric_data["count"] += 1
        metric_data["total_time"] += elapsed
        metric_data["min_time"] = min(metric_data["min_time"], elapsed)
        metric_data["max_time"] = max(metric_data["max_time"], elapsed)
        if success:
            metric_data["success_count"] += 1
        else:
            metric_data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance metrics for this service.

        Returns:
            Dictionary with metrics for each measured operation
        """
        metrics = BaseService._class_metrics.get(self.__class__.__name__, {})
        result: Dict[str, Any] = {}
        for operation, data in metrics.items():
            count = data["count"]
            if count == 0:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "min_time": data["min_time"],
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
                "success_count": data["success_count"],
                "failure_count": data["failure_count"],
            }
        return result

    def reset_metrics(self) -> None:
        """Reset all metrics for this service."""
        BaseService._class_metrics.pop(self.__class__.__name__, None)


def _finish_measurement(
    service: Any,
    operation_name: str,
    elapsed: float,
    success: bool,
    error_type: Optional[str],
) -> None:
    if hasattr(service, "_record_metric"):
        service._record_metric(operation_name, elapsed, success)

    if elapsed > settings.slow_operation_threshold and hasattr(service, "logger"):
        service.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

    prometheus_metrics.record_service_operation(
        service=service.__class__.__name__,
        operation=operation_name,
        duration=elapsed,
        status="success" if success else "error",
        error_type=error_type,
    )
