"""Domain exceptions for the rental booking system.

Every error carries a ``kind`` that the HTTP boundary maps to a stable status
code, and a ``code`` string that clients can match on.
"""

from datetime import date
from typing import Any

KIND_NOT_FOUND = "NotFound"
KIND_VALIDATION = "Validation"
KIND_CONFLICT = "Conflict"
KIND_AUTHORIZATION = "Authorization"
KIND_UPSTREAM = "Upstream"
KIND_STORAGE = "Storage"


class DomainError(Exception):
    """Base class for every domain error."""

    kind: str = KIND_VALIDATION

    def __init__(self, message: str, code: str | None = None, details: Any = None):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details
        super().__init__(self.message)


# === Kind roots ===


class NotFoundError(DomainError):
    kind = KIND_NOT_FOUND

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message=message, code=code)


class ValidationError(DomainError):
    kind = KIND_VALIDATION

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: Any = None):
        super().__init__(message=message, code=code, details=details)


class ConflictError(DomainError):
    kind = KIND_CONFLICT

    def __init__(self, message: str, code: str = "CONFLICT", details: Any = None):
        super().__init__(message=message, code=code, details=details)


class AuthorizationError(DomainError):
    kind = KIND_AUTHORIZATION

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message=message, code="AUTHORIZATION_ERROR")


class UpstreamError(DomainError):
    """An external collaborator (equipment catalog, payment gateway) failed or timed out."""

    kind = KIND_UPSTREAM

    def __init__(self, service: str, message: str | None = None):
        super().__init__(
            message=message or f"External service '{service}' is unavailable",
            code="UPSTREAM_ERROR",
            details={"service": service},
        )
        self.service = service


class ReservationStoreError(DomainError):
    """The reservation or payment store could not complete an operation."""

    kind = KIND_STORAGE

    def __init__(self, operation: str):
        super().__init__(
            message=f"Storage operation failed: {operation}",
            code="STORAGE_ERROR",
        )
        self.operation = operation


# === Not found ===


class ReservationNotFoundError(NotFoundError):
    def __init__(self, reservation_id: str):
        super().__init__(
            message=f"Reservation not found: {reservation_id}",
            code="RESERVATION_NOT_FOUND",
        )
        self.reservation_id = reservation_id


class EquipmentNotFoundError(NotFoundError):
    def __init__(self, equipment_id: str):
        super().__init__(
            message=f"Equipment not found: {equipment_id}",
            code="EQUIPMENT_NOT_FOUND",
        )
        self.equipment_id = equipment_id


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: str | None = None, reservation_id: str | None = None):
        identifier = f"id {payment_id}" if payment_id else f"reservation {reservation_id}"
        super().__init__(
            message=f"Payment not found for {identifier}",
            code="PAYMENT_NOT_FOUND",
        )
        self.payment_id = payment_id
        self.reservation_id = reservation_id


# === Date window ===


class InvalidDateRangeError(ValidationError):
    """Base for window rule violations."""

    def __init__(self, message: str, code: str, start: date, end: date):
        super().__init__(
            message=message,
            code=code,
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        self.start = start
        self.end = end


class PastStartDateError(InvalidDateRangeError):
    def __init__(self, start: date, end: date):
        super().__init__("Start date cannot be in the past", "PAST_START_DATE", start, end)


class EndBeforeOrEqualStartError(InvalidDateRangeError):
    def __init__(self, start: date, end: date):
        super().__init__(
            "End date must be after start date", "END_BEFORE_OR_EQUAL_START", start, end
        )


class TooFarInFutureError(InvalidDateRangeError):
    def __init__(self, start: date, end: date, max_advance_days: int):
        super().__init__(
            f"Start date cannot be more than {max_advance_days} days in the future",
            "TOO_FAR_IN_FUTURE",
            start,
            end,
        )
        self.max_advance_days = max_advance_days


# === Pricing ===


class SubMinimumDurationError(ValidationError):
    def __init__(self, days: int):
        super().__init__(
            message="Booking must be at least 1 day",
            code="SUB_MINIMUM_DURATION",
            details={"days": days},
        )
        self.days = days


class InvalidDailyRateError(ValidationError):
    def __init__(self, daily_rate: Any):
        super().__init__(
            message=f"Daily rate must be positive: {daily_rate}",
            code="INVALID_DAILY_RATE",
        )
        self.daily_rate = daily_rate


# === Lifecycle ===


class InvalidReservationStatusError(ValidationError):
    """The reservation's current status does not allow the operation."""

    def __init__(self, current_status: str, operation: str, message: str | None = None):
        super().__init__(
            message=message or f"Cannot {operation} reservation with status: {current_status}",
            code="INVALID_RESERVATION_STATUS",
            details={"current_status": current_status, "operation": operation},
        )
        self.current_status = current_status
        self.operation = operation


class EquipmentUnavailableError(ValidationError):
    def __init__(self, equipment_id: str, status: str):
        super().__init__(
            message=f"Equipment is currently {status}",
            code="EQUIPMENT_UNAVAILABLE",
            details={"equipment_id": equipment_id, "status": status},
        )
        self.equipment_id = equipment_id
        self.status = status


class CancellationWindowClosedError(ValidationError):
    def __init__(self, notice_hours: int, hours_until_start: float):
        super().__init__(
            message=f"Bookings must be cancelled at least {notice_hours} hours before the start date",
            code="CANCELLATION_WINDOW_CLOSED",
            details={"hours_until_start": round(hours_until_start, 2)},
        )
        self.notice_hours = notice_hours
        self.hours_until_start = hours_until_start


class ReservationConflictError(ConflictError):
    def __init__(self, equipment_id: str, start: date, end: date):
        super().__init__(
            message="Equipment is already booked for the selected dates",
            code="RESERVATION_CONFLICT",
            details={
                "equipment_id": equipment_id,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            },
        )
        self.equipment_id = equipment_id
        self.start = start
        self.end = end


# === Payments ===


class PaymentAlreadyProcessedError(ValidationError):
    def __init__(self, payment_id: str, current_status: str):
        super().__init__(
            message=f"Payment {payment_id} already processed with status: {current_status}",
            code="PAYMENT_ALREADY_PROCESSED",
        )
        self.payment_id = payment_id
        self.current_status = current_status


class InvalidRefundError(ValidationError):
    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_REFUND")
