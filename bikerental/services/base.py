# bikerental/services/base.py
"""
Base Service Pattern for the bike rental service.

Provides common functionality for all service classes:
- Logging
- Performance monitoring (slow-operation warnings, Prometheus metrics)
"""

import asyncio
from functools import wraps
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.ledger import Ledger

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """
    Base class for all service layer components.

    Services receive the Ledger rather than a session: transaction scope is
    decided per operation.
    """

    def __init__(self, ledger: Optional[Ledger] = None):
        self.ledger = ledger
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Works for both sync and async methods. Durations and outcomes go to
        Prometheus; anything slower than SLOW_OPERATION_SECONDS is logged.

        Usage:
            @BaseService.measure_operation("make_reservation")
            async def make_reservation(self, request):
                ...
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            if not asyncio.iscoroutinefunction(func):

                @wraps(func)
                def wrapper(self, *args, **kwargs):
                    start_time = time.time()
                    error_type: Optional[str] = None
                    success = False
                    try:
                        result = func(self, *args, **kwargs)
                        success = True
                        return result
                    except Exception as exc:
                        error_type = type(exc).__name__
                        raise
                    finally:
                        _finish(self, operation_name, time.time() - start_time, success, error_type)

                return cast(F, wrapper)

            @wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                start_time = time.time()
                error_type: Optional[str] = None
                success = False
                try:
                    result = await func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as exc:
                    error_type = type(exc).__name__
                    raise
                finally:
                    _finish(self, operation_name, time.time() - start_time, success, error_type)

            return cast(F, async_wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})


def _finish(
    service: Any,
    operation_name: str,
    elapsed: float,
    success: bool,
    error_type: Optional[str],
) -> None:
    service_logger = getattr(service, "logger", logger)
    try:
        prometheus_metrics.record_service_operation(
            service=service.__class__.__name__,
            operation=operation_name,
            duration=elapsed,
            status="success" if success else "error",
            error_type=error_type,
        )
    except Exception as exc:
        # Metrics must not break the operation itself
        service_logger.debug("Failed to record metrics for %s: %s", operation_name, exc)

    if elapsed > SLOW_OPERATION_SECONDS:
        service_logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")
