"""Classification of Google Calendar API failures."""

from enum import Enum
from typing import Optional


class CalendarErrorType(str, Enum):
    RATE_LIMITED = "rate_limited"
    TOKEN_EXPIRED = "token_expired"
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    NETWORK_ERROR = "network_error"
    INVALID_REQUEST = "invalid_request"
    QUOTA_EXCEEDED = "quota_exceeded"
    CALENDAR_NOT_FOUND = "calendar_not_found"
    EVENT_CONFLICT = "event_conflict"
    UNKNOWN_ERROR = "unknown_error"


RETRYABLE_ERRORS = frozenset({
    CalendarErrorType.RATE_LIMITED,
    CalendarErrorType.NETWORK_ERROR,
    CalendarErrorType.UNKNOWN_ERROR,
})


class CalendarError(Exception):
    """A failed calendar call. Never propagates out of booking submission."""

    def __init__(
        self,
        error_type: CalendarErrorType,
        message: str,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.error_type in RETRYABLE_ERRORS

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"


def classify_http_error(status: int, reason: str = "", *, event_scoped: bool = True) -> CalendarErrorType:
    """Map an HTTP status from the Calendar API to an error type.

    ``event_scoped`` distinguishes a missing event (update/delete) from a
    missing calendar (insert/list) on 404.
    """
    lowered = reason.lower()
    if status == 400:
        return CalendarErrorType.INVALID_REQUEST
    if status == 401:
        if "invalid" in lowered:
            return CalendarErrorType.INVALID_TOKEN
        return CalendarErrorType.TOKEN_EXPIRED
    if status == 403:
        if "ratelimit" in lowered.replace(" ", "") or "rate limit" in lowered:
            return CalendarErrorType.RATE_LIMITED
        if "quota" in lowered:
            return CalendarErrorType.QUOTA_EXCEEDED
        return CalendarErrorType.FORBIDDEN
    if status == 404:
        return CalendarErrorType.NOT_FOUND if event_scoped else CalendarErrorType.CALENDAR_NOT_FOUND
    if status == 409:
        return CalendarErrorType.EVENT_CONFLICT
    if status == 429:
        return CalendarErrorType.RATE_LIMITED
    if status >= 500:
        return CalendarErrorType.NETWORK_ERROR
    return CalendarErrorType.UNKNOWN_ERROR
