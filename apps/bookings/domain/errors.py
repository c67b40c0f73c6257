"""
Booking Error Taxonomy

Every expected business failure of a booking use case is a BookingError
subclass carrying a stable machine-readable code and the HTTP status the
API layer answers with. Views translate them; anything that is not a
BookingError is an unexpected failure and goes to Django's 500 handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.domain.dates import DateError


class BookingError(Exception):
    """Base class for booking business errors"""

    code = "booking_error"
    http_status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


# ===== 4xx: user-correctable input =====

class ValidationError(BookingError):
    code = "validation_error"
    http_status = 400


class DateValidationFailed(ValidationError):
    """Stay dates were rejected by the date validator"""

    code = "date_validation_failed"

    def __init__(self, date_error: "DateError", message: str = ""):
        super().__init__(message)
        self.date_error = date_error

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.date_error.value
        return data


# ===== 404 =====

class NotFoundError(BookingError):
    code = "not_found"
    http_status = 404


class PropertyNotFound(NotFoundError):
    code = "property_not_found"


class BookingNotFound(NotFoundError):
    code = "booking_not_found"


# ===== 409: conflicts with current state =====

class ConflictError(BookingError):
    code = "conflict"
    http_status = 409


class AvailabilityConflict(ConflictError):
    code = "availability_conflict"


class StateError(ConflictError):
    code = "invalid_state"


class InvalidStatusTransition(StateError):
    code = "invalid_status_transition"


class AlreadyCancelled(StateError):
    code = "already_cancelled"


class NotCancellable(StateError):
    code = "not_cancellable"


# ===== 5xx: collaborators =====

class PaymentError(BookingError):
    """Payment gateway failed; the booking stays PENDING for a retry"""

    code = "payment_error"
    http_status = 502


class PersistenceError(BookingError):
    """Data store failed; not retried automatically"""

    code = "persistence_error"
    http_status = 500
