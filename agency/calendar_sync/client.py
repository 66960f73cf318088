"""
Google Calendar client for strategy-call events.

Authenticates with a service account and wraps the v3 events API.
The underlying client is blocking; async callers run it through
``asyncio.to_thread``. Every API failure is raised as CalendarError.
"""

import logging
import os
from typing import Any, Callable, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from agency.calendar_sync.errors import CalendarError, CalendarErrorType, classify_http_error
from agency.config import CalendarConfig

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


class GoogleCalendarClient:
    """Create, update, delete and list events on one calendar."""

    def __init__(
        self,
        calendar_id: str,
        service_account_file: Optional[str] = None,
        *,
        service: Any = None,
    ) -> None:
        self.calendar_id = calendar_id
        self.service_account_file = service_account_file
        self._service = service

    @classmethod
    def from_config(cls, config: CalendarConfig) -> Optional["GoogleCalendarClient"]:
        """Client for the configured calendar, or None when calendar sync is off."""
        if not config.is_configured:
            logger.info("Google Calendar not configured; events will not be created")
            return None
        return cls(config.calendar_id, config.service_account_file)

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = self._authenticate()
        return self._service

    def _authenticate(self) -> Any:
        if not self.service_account_file or not os.path.exists(self.service_account_file):
            raise CalendarError(
                CalendarErrorType.INVALID_TOKEN,
                f"Service account file not found: {self.service_account_file}",
            )
        try:
            creds = service_account.Credentials.from_service_account_file(
                self.service_account_file, scopes=SCOPES
            )
            service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        except (GoogleAuthError, ValueError) as e:
            raise CalendarError(CalendarErrorType.INVALID_TOKEN, str(e)) from e
        logger.info("Google Calendar API initialised for %s", self.calendar_id)
        return service

    def _execute(self, action: str, request: Callable[[], Any], *, event_scoped: bool = True) -> Any:
        try:
            return request().execute()
        except CalendarError:
            raise
        except HttpError as e:
            status = int(getattr(e.resp, "status", 0) or 0)
            reason = getattr(e, "reason", "") or str(e)
            error_type = classify_http_error(status, reason, event_scoped=event_scoped)
            logger.warning("Calendar %s failed (%s, HTTP %d): %s", action, error_type.value, status, reason)
            raise CalendarError(error_type, reason, status) from e
        except RefreshError as e:
            logger.warning("Calendar %s token refresh failed: %s", action, e)
            raise CalendarError(CalendarErrorType.TOKEN_EXPIRED, str(e)) from e
        except (TransportError, httplib2.HttpLib2Error, OSError, TimeoutError) as e:
            logger.warning("Calendar %s network failure: %s", action, e)
            raise CalendarError(CalendarErrorType.NETWORK_ERROR, str(e)) from e
        except GoogleAuthError as e:
            logger.warning("Calendar %s authentication failed: %s", action, e)
            raise CalendarError(CalendarErrorType.INVALID_TOKEN, str(e)) from e

    def create_event(self, body: dict[str, Any]) -> dict[str, Any]:
        """Insert an event and provision a Google Meet link."""
        event = self._execute(
            "create",
            lambda: self.service.events().insert(
                calendarId=self.calendar_id,
                body=body,
                conferenceDataVersion=1,
                sendUpdates="all",
            ),
            event_scoped=False,
        )
        logger.info("Calendar event created: %s", event.get("id"))
        return event

    def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]:
        event = self._execute(
            "update",
            lambda: self.service.events().patch(
                calendarId=self.calendar_id,
                eventId=event_id,
                body=body,
                conferenceDataVersion=1,
                sendUpdates="all",
            ),
        )
        logger.info("Calendar event updated: %s", event_id)
        return event

    def delete_event(self, event_id: str) -> None:
        self._execute(
            "delete",
            lambda: self.service.events().delete(
                calendarId=self.calendar_id, eventId=event_id, sendUpdates="all"
            ),
        )
        logger.info("Calendar event deleted: %s", event_id)

    def list_events(self, time_min: str, time_max: str) -> list[dict[str, Any]]:
        """Events between two RFC3339 timestamps, expanded and ordered by start."""
        result = self._execute(
            "list",
            lambda: self.service.events().list(
                calendarId=self.calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
            ),
            event_scoped=False,
        )
        return result.get("items", [])
