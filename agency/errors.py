"""
Error taxonomy shared by the services and the HTTP layer.

Three families: validation problems the caller can fix, records that do
not exist, and failures of the remote backend. The API maps them to
422/409, 404 and 502 respectively.
"""

from typing import Optional


class AgencyError(Exception):
    """Base class for all application errors."""

    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(AgencyError):
    """Input was rejected; ``field_errors`` maps field name to message."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field_errors: Optional[dict[str, str]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code)
        self.field_errors = dict(field_errors or {})

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field_errors:
            data["field_errors"] = self.field_errors
        return data


class SlotUnavailableError(ValidationError):
    """The requested date/time cannot be booked (blackout, full, or out of window)."""

    code = "SLOT_UNAVAILABLE"


class NotFoundError(AgencyError):
    code = "NOT_FOUND"


class ServiceError(AgencyError):
    """The remote backend failed or returned something unusable."""

    code = "SERVICE_ERROR"


def from_backend_error(
    code: Optional[str],
    message: str,
    details: Optional[str] = None,
) -> AgencyError:
    """Translate a PostgREST / Postgres error payload into an AgencyError."""
    text = message or details or "Unknown database error"
    lowered = text.lower()
    if code == "PGRST116":
        return NotFoundError("The requested record was not found.")
    if code == "23505" or "duplicate key value" in lowered:
        return ValidationError(
            "A record with these details already exists.", code="DUPLICATE_ENTRY"
        )
    if code == "23503" or "foreign key" in lowered:
        return ValidationError(
            "Referenced record does not exist.", code="INVALID_REFERENCE"
        )
    if code == "23514" or "check constraint" in lowered:
        return ValidationError(f"Invalid data: {text}", code="VALIDATION_ERROR")
    return ServiceError(f"Database error: {text}", code=code or "SERVICE_ERROR")
