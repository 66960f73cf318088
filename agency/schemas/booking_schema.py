"""Booking, time-slot template and availability data models."""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class BookingStatus(str, Enum):
    """Lifecycle status of a strategy-call booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class CalendarSyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TimeSlotTemplateCreate(BaseModel):
    """Weekly recurring slot definition. day_of_week: 0=Sunday .. 6=Saturday."""

    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    is_available: bool = True
    max_bookings_per_slot: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeSlotTemplate(TimeSlotTemplateCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TimeSlotTemplateUpdate(BaseModel):
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: Optional[bool] = None
    max_bookings_per_slot: Optional[int] = Field(default=None, ge=1)


class BlackoutDateCreate(BaseModel):
    date: date
    reason: Optional[str] = None


class BlackoutDate(BlackoutDateCreate):
    id: str
    created_at: Optional[datetime] = None


class AvailableSlot(BaseModel):
    """A concrete, bookable instance of a template on a specific date."""

    date: date
    time_slot: str
    display: str
    start_time: time
    end_time: time
    max_bookings: int
    booked_count: int = 0
    available_count: int = 0
    available: bool = False


class DayAvailability(BaseModel):
    date: date
    day_name: str
    slots: list[AvailableSlot] = Field(default_factory=list)

    @property
    def has_open_slots(self) -> bool:
        return any(s.available for s in self.slots)


class BookingCreate(BaseModel):
    """Raw strategy-call form submission. Field rules are enforced by the form manager."""

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    business_name: str = ""
    business_type: str = ""
    business_location: str = ""
    current_marketing: list[str] = Field(default_factory=list)
    biggest_challenge: str = ""
    monthly_revenue_range: str = ""
    preferred_date: str = ""
    preferred_time_slot: str = ""
    additional_notes: Optional[str] = None


class Booking(BaseModel):
    """A stored booking row."""

    id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    business_name: str
    business_type: str
    business_location: str
    current_marketing: list[str] = Field(default_factory=list)
    biggest_challenge: str
    monthly_revenue_range: str
    preferred_date: date
    preferred_time_slot: str
    additional_notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    google_calendar_event_id: Optional[str] = None
    google_meet_link: Optional[str] = None
    calendar_sync_status: CalendarSyncStatus = CalendarSyncStatus.PENDING
    calendar_sync_error: Optional[str] = None
    admin_notes: Optional[str] = None
    confirmation_sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    note: Optional[str] = None


class BookingReschedule(BaseModel):
    preferred_date: str
    preferred_time_slot: str


class BookingFilters(BaseModel):
    status: Optional[list[BookingStatus]] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    business_type: Optional[str] = None
    calendar_sync_status: Optional[CalendarSyncStatus] = None
    search: Optional[str] = None


class TimeSlotCount(BaseModel):
    time_slot: str
    count: int


class BookingStats(BaseModel):
    """Aggregate booking figures for the admin dashboard."""

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    this_week: int = 0
    this_month: int = 0
    upcoming: int = 0
    average_lead_time_days: float = 0.0
    popular_time_slots: list[TimeSlotCount] = Field(default_factory=list)
    business_types: dict[str, int] = Field(default_factory=dict)
    calendar_sync_failures: int = 0


class BookingConfirmation(BaseModel):
    """What the public site is told after a successful submission."""

    id: str
    status: BookingStatus
    preferred_date: date
    preferred_time_slot: str
    google_meet_link: Optional[str] = None
    calendar_sync_status: CalendarSyncStatus

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingConfirmation":
        return cls(
            id=booking.id,
            status=booking.status,
            preferred_date=booking.preferred_date,
            preferred_time_slot=booking.preferred_time_slot,
            google_meet_link=booking.google_meet_link,
            calendar_sync_status=booking.calendar_sync_status,
        )
