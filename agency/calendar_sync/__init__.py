from agency.calendar_sync.client import GoogleCalendarClient
from agency.calendar_sync.errors import CalendarError, CalendarErrorType, classify_http_error

__all__ = ["GoogleCalendarClient", "CalendarError", "CalendarErrorType", "classify_http_error"]
