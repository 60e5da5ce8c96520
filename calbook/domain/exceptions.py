"""
Domain-specific exception hierarchy for calbook.
"""

from pydantic import ValidationError


class CalbookError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(CalbookError):
    """Raised when guest details, a time window or a selection is malformed.

    ``errors`` maps a field name to a message the client can show next to it.
    """

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def from_validation_error(cls, message: str, exc: ValidationError) -> "InvalidInputError":
        """Build from a pydantic ``ValidationError``, keyed by dotted field location."""
        errors: dict[str, str] = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors[field] = err["msg"]
        return cls(message, errors=errors)


class PersistenceError(CalbookError):
    """Raised when the appointment store fails to append or update a record."""


class CalendarNotFoundError(CalbookError):
    """Raised when an owner id resolves to no calendar."""


class AppointmentNotFoundError(CalbookError):
    """Raised when an appointment does not exist or belongs to another owner."""


class InvalidTransitionError(CalbookError):
    """Raised when an operation is not defined for the current booking or appointment state."""
