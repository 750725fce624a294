# bikerental/core/exceptions.py
"""
Domain-specific exceptions for the bike rental service.

These exceptions keep three failure classes apart so callers can branch on
them: the request itself is invalid (ValidationException), a referenced
entity does not exist (NotFoundException), or something underneath the
service broke (InfrastructureException). A reservation that simply cannot be
satisfied is NOT an exception; it is returned as a rejected outcome.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when a request is malformed or incomplete."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a referenced bike, customer or reservation does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class InfrastructureException(ServiceException):
    """
    Raised when the store, a transaction or an external provider fails.

    The failed step is recorded in ``details["step"]`` and the original error
    is chained as ``__cause__``. These errors are never retried by the service.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        step: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        merged["step"] = step
        super().__init__(message, code=code or "INFRASTRUCTURE_ERROR", details=merged)
        self.step = step


class ProviderException(InfrastructureException):
    """Raised when a discount signal provider fails or times out."""

    def __init__(self, message: str, *, provider: str) -> None:
        super().__init__(
            message,
            step="calculate_discount",
            code="PROVIDER_ERROR",
            details={"provider": provider},
        )
        self.provider = provider


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as database connection
    issues, query failures, or constraint violations.
    """


class ReservationConflictError(RepositoryException):
    """
    Raised when the store itself refuses a reservation write because it
    would overlap an approved reservation (exclusion constraint violation or
    serialization failure).
    """
