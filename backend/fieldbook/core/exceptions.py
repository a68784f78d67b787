# backend/fieldbook/core/exceptions.py
"""
Domain-specific exceptions for the Fieldbook booking platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from datetime import time
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


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
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request-level validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a booking overlaps an accepted booking on the same resource."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class OutOfOperatingHoursException(BusinessRuleException):
    """Raised when a booking window falls outside the facility's daily hours."""

    def __init__(self, daily_start: time, daily_end: time):
        super().__init__(
            message=(
                "Booking must be within operating hours "
                f"{daily_start.strftime('%H:%M')} - {daily_end.strftime('%H:%M')}"
            ),
            code="OUT_OF_OPERATING_HOURS",
            details={
                "daily_start": daily_start.isoformat(),
                "daily_end": daily_end.isoformat(),
            },
        )


class InThePastException(BusinessRuleException):
    """Raised when a booking would start before now."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message=message or "Booking start time is in the past",
            code="BOOKING_IN_THE_PAST",
        )


class InvalidTransitionException(BusinessRuleException):
    """Raised when a booking status change is not allowed by the transition table."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            message=f"Cannot change booking status from {current_status} to {new_status}",
            code="INVALID_STATUS_TRANSITION",
            details={"current_status": current_status, "new_status": new_status},
        )


class BookingExpiredException(BusinessRuleException):
    """Raised when an accepted booking that already ended is disabled."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking has already ended",
            code="BOOKING_EXPIRED",
            details={"booking_id": booking_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
