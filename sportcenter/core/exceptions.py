# sportcenter/core/exceptions.py
"""
Domain-specific exceptions for the sports center core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying message, code and details."""
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
    default_code = "VALIDATION_ERROR"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"


class ForbiddenException(DomainException):
    """Raised when the caller does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class InvalidStateException(DomainException):
    """Raised when an entity is in the wrong lifecycle state for a transition."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_STATE"


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    default_code = "SERVICE_ERROR"

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


class SlotConflictException(ConflictException):
    """Raised when a reservation overlaps a slot that is already held."""

    default_code = "SLOT_CONFLICT"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or "This time slot is not available", details=details)


class IdempotencyKeyReusedException(ConflictException):
    """Raised when an idempotency key is presented for a different operation."""

    default_code = "IDEMPOTENCY_KEY_REUSED"


class InsufficientCreditsException(DomainException):
    """Raised when a debit exceeds the user's credit balance."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "INSUFFICIENT_CREDITS"

    def __init__(self, balance: Decimal, required: Decimal) -> None:
        super().__init__(
            "Insufficient credits",
            details={"balance": str(balance), "required": str(required)},
        )
        self.balance = balance
        self.required = required


class AmountMismatchException(ValidationException):
    """Raised when a payment amount does not match the expected price."""

    default_code = "AMOUNT_MISMATCH"

    def __init__(self, expected: Decimal, provided: Decimal) -> None:
        super().__init__(
            f"Amount mismatch: expected {expected}, provided {provided}",
            details={"expected": str(expected), "provided": str(provided)},
        )
        self.expected = expected
        self.provided = provided


class MissingAmountException(ValidationException):
    """Raised when a percentage reward is requested without a base amount."""

    default_code = "MISSING_AMOUNT"


class UsageLimitExceededException(DomainException):
    """Raised when a promotion has reached its usage limit."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "USAGE_LIMIT_EXCEEDED"


class AlreadyUsedException(DomainException):
    """Raised when a one-time promotion was already applied to the user."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "PROMOTION_ALREADY_USED"


class PromotionExpiredException(InvalidStateException):
    """Raised when a promotion is outside its validity window."""

    default_code = "PROMOTION_EXPIRED"


class RepositoryException(Exception):
    """Raised when a repository operation fails."""

    pass
