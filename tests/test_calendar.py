"""Tests for Google Calendar event bodies, error classification and the client."""

from datetime import datetime
from types import SimpleNamespace

import httplib2
import pytest
from google.auth.exceptions import DefaultCredentialsError, TransportError
from googleapiclient.errors import HttpError

from agency.calendar_sync.client import GoogleCalendarClient
from agency.calendar_sync.errors import CalendarError, CalendarErrorType, classify_http_error
from agency.calendar_sync.templates import (
    FollowUpType,
    build_event_description,
    build_follow_up_event,
    build_rescheduled_event,
    build_strategy_call_event,
    extract_meet_link,
)
from agency.config import CalendarConfig, settings
from tests.conftest import THURSDAY, make_booking


def http_error(status: int, message: str = "") -> HttpError:
    resp = SimpleNamespace(status=status, reason=message or "error")
    content = b'{"error": {"message": "%s"}}' % message.encode() if message else b""
    return HttpError(resp, content)


class FakeRequest:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class FakeEvents:
    """Mimics ``service.events()`` and records the keyword arguments of each call."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {}
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def _request(self, name, kwargs):
        self.calls.append((name, kwargs))
        return FakeRequest(self.result, self.error)

    def insert(self, **kwargs):
        return self._request("insert", kwargs)

    def patch(self, **kwargs):
        return self._request("patch", kwargs)

    def delete(self, **kwargs):
        return self._request("delete", kwargs)

    def list(self, **kwargs):
        return self._request("list", kwargs)


def calendar_client(result=None, error=None):
    events = FakeEvents(result, error)
    service = SimpleNamespace(events=lambda: events)
    return GoogleCalendarClient("agency@group.calendar.google.com", service=service), events


class TestEventTemplates:
    def setup_method(self):
        self.booking = make_booking(
            id="bk-1",
            current_marketing=["Social Media", "SEO"],
            additional_notes="Prefer mornings",
        )

    def test_strategy_call_event(self):
        event = build_strategy_call_event(self.booking)
        assert event["summary"] == "Strategy Call - Citizen Cafe"
        assert event["location"] == "Online via Google Meet"
        assert event["start"]["timeZone"] == settings.business.timezone
        assert event["start"]["dateTime"].startswith("2025-03-05T09:00:00")
        assert event["conferenceData"]["createRequest"]["requestId"] == "strategy-call-bk-1"
        emails = [a["email"] for a in event["attendees"]]
        assert emails == ["jane@example.com.au", settings.business.admin_email]

    def test_event_duration_follows_config(self):
        event = build_strategy_call_event(self.booking)
        start = datetime.fromisoformat(event["start"]["dateTime"])
        end = datetime.fromisoformat(event["end"]["dateTime"])
        assert (end - start).total_seconds() == settings.booking.call_duration_minutes * 60

    def test_description_sections(self):
        description = build_event_description(self.booking)
        assert "CUSTOMER INFORMATION" in description
        assert "Phone: 0412 345 678" in description
        assert "Revenue Range: $5,000 - $20,000" in description
        assert "Current Marketing: Social Media, SEO" in description
        assert "Notes: Prefer mornings" in description
        assert "Wednesday 05 March 2025, 9:00 AM - 10:00 AM" in description
        assert description.rstrip().splitlines()[-3] == "Booking ID: bk-1"

    def test_rescheduled_event(self):
        moved = self.booking.model_copy(update={
            "preferred_date": THURSDAY, "preferred_time_slot": "14:00-15:00",
        })
        event = build_rescheduled_event(self.booking, moved)
        assert event["summary"] == "[RESCHEDULED] Strategy Call - Citizen Cafe"
        assert event["start"]["dateTime"].startswith("2025-03-06T14:00:00")
        assert "Original: 2025-03-05 09:00-10:00" in event["description"]
        assert "New: 2025-03-06 14:00-15:00" in event["description"]

    def test_follow_up_event(self):
        event = build_follow_up_event(
            self.booking, datetime(2025, 3, 12, 14, 0), FollowUpType.PROJECT_KICKOFF
        )
        assert event["summary"] == "Project Kickoff - Citizen Cafe"
        assert "Set up communication channels" in event["description"]
        assert event["start"]["dateTime"].startswith("2025-03-12T14:00:00")
        request_id = event["conferenceData"]["createRequest"]["requestId"]
        assert request_id.startswith("followup-project-kickoff-bk-1-")

    def test_extract_meet_link(self):
        assert extract_meet_link({"hangoutLink": "https://meet.google.com/abc"}) == (
            "https://meet.google.com/abc"
        )
        event = {"conferenceData": {"entryPoints": [
            {"entryPointType": "phone", "uri": "tel:+61"},
            {"entryPointType": "video", "uri": "https://meet.google.com/xyz"},
        ]}}
        assert extract_meet_link(event) == "https://meet.google.com/xyz"
        assert extract_meet_link({}) is None


class TestErrorClassification:
    def test_statuses(self):
        assert classify_http_error(400) == CalendarErrorType.INVALID_REQUEST
        assert classify_http_error(409) == CalendarErrorType.EVENT_CONFLICT
        assert classify_http_error(429) == CalendarErrorType.RATE_LIMITED
        assert classify_http_error(503) == CalendarErrorType.NETWORK_ERROR
        assert classify_http_error(418) == CalendarErrorType.UNKNOWN_ERROR

    def test_unauthorized(self):
        assert classify_http_error(401, "Invalid Credentials") == CalendarErrorType.INVALID_TOKEN
        assert classify_http_error(401, "Token expired") == CalendarErrorType.TOKEN_EXPIRED

    def test_forbidden_variants(self):
        assert classify_http_error(403, "Rate Limit Exceeded") == CalendarErrorType.RATE_LIMITED
        assert classify_http_error(403, "userRateLimitExceeded") == CalendarErrorType.RATE_LIMITED
        assert classify_http_error(403, "Daily quota exceeded") == CalendarErrorType.QUOTA_EXCEEDED
        assert classify_http_error(403, "Forbidden") == CalendarErrorType.FORBIDDEN

    def test_not_found_depends_on_scope(self):
        assert classify_http_error(404) == CalendarErrorType.NOT_FOUND
        assert classify_http_error(404, event_scoped=False) == CalendarErrorType.CALENDAR_NOT_FOUND

    def test_calendar_error(self):
        error = CalendarError(CalendarErrorType.RATE_LIMITED, "slow down", 429)
        assert error.retryable is True
        assert str(error) == "rate_limited: slow down"
        assert CalendarError(CalendarErrorType.FORBIDDEN, "no").retryable is False


class TestGoogleCalendarClient:
    def test_from_config_disabled(self):
        config = CalendarConfig(enabled=False, calendar_id="cal", service_account_file="sa.json")
        assert GoogleCalendarClient.from_config(config) is None

    def test_from_config_enabled(self):
        config = CalendarConfig(enabled=True, calendar_id="cal", service_account_file="sa.json")
        client = GoogleCalendarClient.from_config(config)
        assert client.calendar_id == "cal"
        assert client.service_account_file == "sa.json"

    def test_missing_service_account_file(self):
        client = GoogleCalendarClient("cal", "/nonexistent/service-account.json")
        with pytest.raises(CalendarError) as exc:
            client.service
        assert exc.value.error_type == CalendarErrorType.INVALID_TOKEN

    def test_create_event_requests_meet_link(self):
        client, events = calendar_client({"id": "evt-1", "hangoutLink": "https://meet.google.com/a"})
        event = client.create_event({"summary": "Strategy Call"})
        assert event["id"] == "evt-1"
        name, kwargs = events.calls[0]
        assert name == "insert"
        assert kwargs["calendarId"] == "agency@group.calendar.google.com"
        assert kwargs["conferenceDataVersion"] == 1
        assert kwargs["sendUpdates"] == "all"

    def test_update_event(self):
        client, events = calendar_client({"id": "evt-1"})
        client.update_event("evt-1", {"summary": "Moved"})
        assert events.calls[0][0] == "patch"
        assert events.calls[0][1]["eventId"] == "evt-1"

    def test_delete_missing_event_is_not_found(self):
        client, _ = calendar_client(error=http_error(404, "Not Found"))
        with pytest.raises(CalendarError) as exc:
            client.delete_event("evt-gone")
        assert exc.value.error_type == CalendarErrorType.NOT_FOUND
        assert exc.value.status == 404

    def test_create_on_missing_calendar(self):
        client, _ = calendar_client(error=http_error(404, "Not Found"))
        with pytest.raises(CalendarError) as exc:
            client.create_event({})
        assert exc.value.error_type == CalendarErrorType.CALENDAR_NOT_FOUND

    def test_rate_limit_reason_parsed(self):
        client, _ = calendar_client(error=http_error(403, "Rate Limit Exceeded"))
        with pytest.raises(CalendarError) as exc:
            client.create_event({})
        assert exc.value.error_type == CalendarErrorType.RATE_LIMITED
        assert exc.value.retryable

    def test_network_failure(self):
        client, _ = calendar_client(error=TimeoutError("timed out"))
        with pytest.raises(CalendarError) as exc:
            client.list_events("2025-03-01T00:00:00+11:00", "2025-03-31T00:00:00+11:00")
        assert exc.value.error_type == CalendarErrorType.NETWORK_ERROR

    def test_list_events(self):
        client, events = calendar_client({"items": [{"id": "evt-1"}]})
        assert client.list_events("a", "b") == [{"id": "evt-1"}]
        kwargs = events.calls[0][1]
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"

    def test_list_events_empty(self):
        client, _ = calendar_client({})
        assert client.list_events("a", "b") == []

    def test_token_transport_failure_is_network_error(self):
        client, _ = calendar_client(error=TransportError("Failed to refresh access token"))
        with pytest.raises(CalendarError) as exc:
            client.create_event({})
        assert exc.value.error_type == CalendarErrorType.NETWORK_ERROR

    def test_dns_failure_is_network_error(self):
        client, _ = calendar_client(error=httplib2.ServerNotFoundError("Unable to find the server"))
        with pytest.raises(CalendarError) as exc:
            client.delete_event("evt-1")
        assert exc.value.error_type == CalendarErrorType.NETWORK_ERROR

    def test_other_auth_failure_is_invalid_token(self):
        client, _ = calendar_client(error=DefaultCredentialsError("No credentials"))
        with pytest.raises(CalendarError) as exc:
            client.list_events("a", "b")
        assert exc.value.error_type == CalendarErrorType.INVALID_TOKEN
