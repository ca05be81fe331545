# backend/gymbook/core/exceptions.py
"""
Domain-specific exceptions for the club booking service.

These exceptions carry a user-facing message and a stable code, and are
converted to HTTP errors at the API layer.
"""

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
    """Raised when business validation fails."""

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


class PaymentException(DomainException):
    """Raised when a booking cannot be paid for."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class RateLimitException(DomainException):
    """Raised when a caller exceeds a daily quota."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="RATE_LIMITED", details=details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "The operation failed. Please try again.",
                "code": self.code,
                "details": {},
            },
        )


# Specific booking exceptions


class ClassUnavailableException(ValidationException):
    """Raised when a class is inactive."""

    def __init__(self) -> None:
        super().__init__(
            message="This class is not available for booking",
            code="CLASS_UNAVAILABLE",
        )


class ClassFullException(ValidationException):
    """Raised when a class has no seats left."""

    def __init__(self) -> None:
        super().__init__(message="This class is fully booked", code="CLASS_FULL")


class AlreadyBookedException(ConflictException):
    """Raised when a member already holds a live booking for a class."""

    def __init__(self) -> None:
        super().__init__(message="You have already booked this class", code="ALREADY_BOOKED")


class FreeSessionUsedException(ConflictException):
    """Raised when another booking claimed the member's free session first."""

    def __init__(self) -> None:
        super().__init__(
            message=(
                "Your free session has already been used. "
                "Please book again and pay by card or cash."
            ),
            code="FREE_SESSION_USED",
        )


class BookingLimitException(ValidationException):
    """Raised when a member already holds the maximum upcoming bookings."""

    def __init__(self, limit: int):
        super().__init__(
            message=(
                f"You can have at most {limit} upcoming bookings. Cancel one to book another."
            ),
            code="BOOKING_LIMIT",
            details={"max_future_bookings": limit},
        )


class PaymentRequiredException(PaymentException):
    """Raised when a paid booking arrives without a payment token."""

    def __init__(self, price: str):
        super().__init__(
            message=(
                "Payment required: please provide card details or choose to pay cash "
                "at the session"
            ),
            code="PAYMENT_REQUIRED",
            details={"price": price},
        )


class PaymentFailedException(PaymentException):
    """Raised when the card processor declines or errors."""

    def __init__(self, message: str):
        super().__init__(message=message, code="PAYMENT_FAILED")


class CaptchaFailedException(ValidationException):
    """Raised when human verification is missing or rejected."""

    def __init__(self, missing: bool = False):
        super().__init__(
            message=(
                "Please complete the captcha verification"
                if missing
                else "Captcha verification failed. Please try again."
            ),
            code="CAPTCHA_MISSING" if missing else "CAPTCHA_FAILED",
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
