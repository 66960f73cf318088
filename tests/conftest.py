"""Shared test fixtures and helpers."""

import itertools
from datetime import date, datetime, time, timezone
from typing import Any, Optional

import pytest
import pytz
from fastapi.testclient import TestClient

from agency.api.app import create_app
from agency.api.dependencies import get_admin_token, get_booking_service, get_case_study_service
from agency.backend.memory import InMemoryBackend
from agency.calendar_sync.errors import CalendarError
from agency.config import BookingConfig
from agency.schemas.booking_schema import (
    Booking,
    BookingCreate,
    BookingStatus,
    TimeSlotTemplate,
)
from agency.tools.booking import BookingService
from agency.tools.case_studies import CaseStudyService

# Monday 3 March 2025, 11:00 in Melbourne (AEDT, UTC+11)
NOW = datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)
TZ_NAME = "Australia/Melbourne"
TZ = pytz.timezone(TZ_NAME)
TUESDAY = date(2025, 3, 4)
WEDNESDAY = date(2025, 3, 5)
THURSDAY = date(2025, 3, 6)
ADMIN_TOKEN = "test-admin-token"

BOOKING_RULES = BookingConfig(
    max_advance_days=60,
    min_advance_hours=24,
    call_duration_minutes=60,
    availability_window_days=14,
    default_max_bookings_per_slot=1,
)

_ids = itertools.count(1)


def make_template(
    day_of_week: int = 3,
    start: str = "09:00",
    end: str = "10:00",
    max_bookings: int = 1,
    is_available: bool = True,
    template_id: Optional[str] = None,
) -> TimeSlotTemplate:
    """Helper to create a TimeSlotTemplate (day_of_week 3 = Wednesday)."""
    return TimeSlotTemplate(
        id=template_id or f"tpl-{next(_ids)}",
        day_of_week=day_of_week,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        is_available=is_available,
        max_bookings_per_slot=max_bookings,
    )


def make_booking(
    preferred_date: date = WEDNESDAY,
    time_slot: str = "09:00-10:00",
    status: BookingStatus = BookingStatus.PENDING,
    **overrides: Any,
) -> Booking:
    """Helper to create a stored Booking row with sensible defaults."""
    values = {
        "id": f"bk-{next(_ids)}",
        "customer_name": "Jane Citizen",
        "customer_email": "jane@example.com.au",
        "customer_phone": "0412345678",
        "business_name": "Citizen Cafe",
        "business_type": "Hospitality & Food",
        "business_location": "Fitzroy, VIC",
        "current_marketing": ["Social Media"],
        "biggest_challenge": "Not enough weekday customers",
        "monthly_revenue_range": "$5,000 - $20,000",
        "preferred_date": preferred_date,
        "preferred_time_slot": time_slot,
        "status": status,
        "created_at": NOW,
    }
    values.update(overrides)
    return Booking(**values)


async def add_booking(backend, **kwargs: Any) -> Booking:
    """Store a booking row directly, bypassing the submission checks."""
    row = await backend.insert("bookings", make_booking(**kwargs).model_dump(mode="json"))
    return Booking(**row)


def valid_payload(**overrides: Any) -> BookingCreate:
    """A booking form submission that passes every field check."""
    values = {
        "customer_name": "Jane Citizen",
        "customer_email": "Jane@Example.com.au",
        "customer_phone": "0412 345 678",
        "business_name": "Citizen Cafe",
        "business_type": "hospitality & food",
        "business_location": "Fitzroy, VIC",
        "current_marketing": ["social media", "SEO"],
        "biggest_challenge": "Not enough customers on weekdays.",
        "monthly_revenue_range": "$5,000 - $20,000",
        "preferred_date": WEDNESDAY.isoformat(),
        "preferred_time_slot": "09:00-10:00",
        "additional_notes": "Happy to chat any morning.",
    }
    values.update(overrides)
    return BookingCreate(**values)


class FakeCalendar:
    """Records calendar calls; set ``fail_with`` to make every call raise."""

    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.deleted: list[str] = []
        self.fail_with: Optional[CalendarError] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def create_event(self, body: dict[str, Any]) -> dict[str, Any]:
        self._check()
        self.created.append(body)
        event_id = f"evt-{len(self.created)}"
        return {**body, "id": event_id, "hangoutLink": f"https://meet.google.com/{event_id}"}

    def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]:
        self._check()
        self.updated.append((event_id, body))
        return {**body, "id": event_id}

    def delete_event(self, event_id: str) -> None:
        self._check()
        self.deleted.append(event_id)

    def list_events(self, time_min: str, time_max: str) -> list[dict[str, Any]]:
        self._check()
        return [{"id": "evt-1", "summary": "Strategy Call - Citizen Cafe"}]


def template_rows() -> list[dict[str, Any]]:
    """Wednesday 09-10 (1 seat) and 10-11 (2 seats), Thursday 09-10 (1 seat)."""
    templates = [
        make_template(3, "09:00", "10:00", 1),
        make_template(3, "10:00", "11:00", 2),
        make_template(4, "09:00", "10:00", 1),
    ]
    return [t.model_dump(mode="json") for t in templates]


@pytest.fixture
def backend():
    return InMemoryBackend(tables={"available_time_slots": template_rows()})


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def booking_service(backend, calendar):
    return BookingService(
        backend, calendar, config=BOOKING_RULES, tz_name=TZ_NAME, clock=lambda: NOW
    )


@pytest.fixture
def offline_booking_service(backend):
    """Booking service with calendar sync disabled."""
    return BookingService(backend, None, config=BOOKING_RULES, tz_name=TZ_NAME, clock=lambda: NOW)


@pytest.fixture
def case_study_service(backend):
    return CaseStudyService(backend, clock=lambda: NOW)


@pytest.fixture
def client(backend, calendar, booking_service, case_study_service):
    app = create_app(backend=backend, calendar=calendar)
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    app.dependency_overrides[get_case_study_service] = lambda: case_study_service
    app.dependency_overrides[get_admin_token] = lambda: ADMIN_TOKEN
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
