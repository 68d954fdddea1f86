"""Domain error codes for the events module.

Every error belongs to one of four categories (validation, conflict,
authorization, not found). Handlers map the category to an HTTP status;
the code and message are safe to show to the caller.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
    START_DATE_IN_PAST = "START_DATE_IN_PAST"
    INVALID_EVENT_ID = "INVALID_EVENT_ID"

    DUPLICATE_TITLE = "DUPLICATE_TITLE"
    EVENT_FULL = "EVENT_FULL"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    REGISTRATION_ALREADY_CANCELLED = "REGISTRATION_ALREADY_CANCELLED"
    NOT_ELIGIBLE_FOR_ATTENDANCE = "NOT_ELIGIBLE_FOR_ATTENDANCE"
    ATTENDANCE_ALREADY_RECORDED = "ATTENDANCE_ALREADY_RECORDED"
    EVENT_CLOSED = "EVENT_CLOSED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    NOT_EVENT_OWNER = "NOT_EVENT_OWNER"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Raised when input is missing or malformed. Carries the offending field."""

    def __init__(self, field: str, message: str, code: ErrorCode = ErrorCode.INVALID_FIELD) -> None:
        super().__init__(code=code, message=message)
        self.field = field


class ConflictError(DomainError):
    """Raised when an operation conflicts with the current state of an event."""


class AuthorizationError(DomainError):
    """Raised when the actor may not perform an operation."""


class NotFoundError(DomainError):
    """Raised when a referenced event or registration does not exist."""


class MissingFieldError(ValidationError):
    """Raised when a required field is absent or blank."""

    def __init__(self, field: str, label: str) -> None:
        super().__init__(field, f"{label} is required", code=ErrorCode.MISSING_FIELD)


class InvalidDateRangeError(ValidationError):
    """Raised when the end date falls before the start date."""

    def __init__(self) -> None:
        super().__init__(
            "end_date",
            "End date must be on or after the start date",
            code=ErrorCode.INVALID_DATE_RANGE,
        )


class InvalidTimeRangeError(ValidationError):
    """Raised when the time range cannot be parsed or is out of order."""

    def __init__(self, message: str = "Invalid event time format") -> None:
        super().__init__("time_range", message, code=ErrorCode.INVALID_TIME_RANGE)


class StartDateInPastError(ValidationError):
    """Raised when an event is scheduled before today."""

    def __init__(self) -> None:
        super().__init__(
            "start_date",
            "Event date cannot be in the past",
            code=ErrorCode.START_DATE_IN_PAST,
        )


class InvalidEventIdError(ValidationError):
    """Raised when an event ID is invalid."""

    def __init__(self) -> None:
        super().__init__("event_id", "Invalid event ID format", code=ErrorCode.INVALID_EVENT_ID)


class DuplicateTitleError(ConflictError):
    """Raised when an active event already uses the requested title."""

    def __init__(self, title: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_TITLE,
            message="An event with this title already exists. Please choose a different title.",
        )
        self.title = title


class EventFullError(ConflictError):
    """Raised when every seat of an event is taken."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EVENT_FULL, message="Event is full")


class AlreadyRegisteredError(ConflictError):
    """Raised when a donor already holds an active registration."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="You are already registered for this event",
        )


class RegistrationAlreadyCancelledError(ConflictError):
    """Raised when cancelling a registration that is already cancelled."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_ALREADY_CANCELLED,
            message="Registration is already cancelled",
        )


class NotEligibleForAttendanceError(ConflictError):
    """Raised when marking attendance for a donor without a live registration."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NOT_ELIGIBLE_FOR_ATTENDANCE,
            message="Only registered donors can be marked as attended",
        )


class AttendanceAlreadyRecordedError(ConflictError):
    """Raised when cancelling a registration whose attendance is already recorded."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ATTENDANCE_ALREADY_RECORDED,
            message="Attendance has already been recorded for this registration",
        )


class EventClosedError(ConflictError):
    """Raised when an operation targets a completed or cancelled event."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.EVENT_CLOSED, message=message)


class ConcurrentModificationError(ConflictError):
    """Raised when another request holds the lock for too long."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CONCURRENT_MODIFICATION,
            message="The event is being modified by another request, please try again",
        )


class NotEventOwnerError(AuthorizationError):
    """Raised when someone other than the organizer modifies an event."""

    def __init__(self, action: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_EVENT_OWNER,
            message=f"Not authorized to {action} this event",
        )


class RoleNotPermittedError(AuthorizationError):
    """Raised when the actor's role does not allow the operation."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.ROLE_NOT_PERMITTED, message=message)


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        self.event_id = event_id


class RegistrationNotFoundError(NotFoundError):
    """Raised when a donor has no registration for an event."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="You are not registered for this event",
        )
