# backend/studiohub/core/exceptions.py
"""
Domain-specific exceptions for the reservation backend.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

from .config import settings

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


class ForbiddenException(DomainException):
    """Raised when the acting user may not touch a reservation."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails (storage unreachable, transaction failure)."""

    def to_http_exception(self) -> HTTPException:
        message = (
            "An error occurred processing your request" if settings.is_production else self.message
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": message,
                "code": self.code,
                "details": {},
            },
        )


# Specific business exceptions


class SlotUnavailableException(ConflictException):
    """Raised when requested slots are already held or booked."""

    def __init__(
        self,
        item_id: str,
        booking_date: str,
        unavailable: List[str],
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message or "Selected time slots are no longer available",
            code="SLOT_UNAVAILABLE",
            details={
                "item_id": item_id,
                "booking_date": booking_date,
                "unavailable_slots": list(unavailable),
            },
        )


class ReservationExpiredException(ValidationException):
    """Raised when a pending reservation is acted on after its hold deadline."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            message="Reservation has expired",
            code="RESERVATION_EXPIRED",
            details={"reservation_id": reservation_id},
        )


class InvalidReservationStateException(BusinessRuleException):
    """Raised when a transition is not allowed from the reservation's current status."""

    def __init__(self, reservation_id: str, current_status: str, action: str) -> None:
        super().__init__(
            message=f"Cannot {action} a reservation that is {current_status}",
            code="INVALID_RESERVATION_STATE",
            details={
                "reservation_id": reservation_id,
                "status": current_status,
                "action": action,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
