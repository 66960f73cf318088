"""
Strategy-call booking service.

Ties together form validation, the submission guardrails, the booking
tables and the Google Calendar side effect. Capacity is re-checked
against freshly fetched data just before the insert; the check is not
transactional, so two simultaneous submissions for the last seat can
both succeed.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Optional

import pytz

from agency.backend.repositories import AvailabilityRepository, BookingRepository
from agency.calendar_sync.client import GoogleCalendarClient
from agency.calendar_sync.errors import CalendarError, CalendarErrorType
from agency.calendar_sync.templates import (
    FollowUpType,
    build_follow_up_event,
    build_rescheduled_event,
    build_strategy_call_event,
    extract_meet_link,
)
from agency.config import BookingConfig, settings
from agency.errors import ServiceError, SlotUnavailableError, ValidationError
from agency.reporting.export import bookings_to_csv
from agency.reporting.metrics import compute_booking_stats
from agency.schemas.booking_schema import (
    BlackoutDate,
    BlackoutDateCreate,
    Booking,
    BookingCreate,
    BookingFilters,
    BookingReschedule,
    BookingStats,
    BookingStatus,
    CalendarSyncStatus,
    DayAvailability,
    TimeSlotTemplate,
    TimeSlotTemplateCreate,
    TimeSlotTemplateUpdate,
)
from agency.tools.availability import (
    compute_availability,
    format_time_slot,
    get_available_dates,
    parse_time_slot,
)
from agency.tools.holidays import holidays_as_blackouts
from agency.utils import sanitize_text, utc_now
from agency.workflow.form_manager import BookingFormManager
from agency.workflow.guardrails import SLOT_VIOLATIONS, BookingGuardrailPipeline, GuardrailResult
from agency.workflow.status_machine import BookingStatusMachine

logger = logging.getLogger(__name__)

# Monday..Friday in the 0=Sunday numbering
DEFAULT_WEEKDAYS = [1, 2, 3, 4, 5]
DEFAULT_HOURS = [(9, 10), (10, 11), (11, 12), (13, 14), (14, 15), (15, 16), (16, 17)]

RESCHEDULABLE = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def _raise_for_failures(failures: list[GuardrailResult]) -> None:
    if not failures:
        return
    field_errors = {f.field: f.message for f in reversed(failures) if f.field}
    first = failures[0]
    if all(f.violation_type in SLOT_VIOLATIONS for f in failures):
        raise SlotUnavailableError(first.message, field_errors=field_errors)
    raise ValidationError(first.message, field_errors=field_errors, code="SUSPICIOUS_CONTENT")


class BookingService:
    """Public booking flow plus the admin operations on bookings and availability."""

    def __init__(
        self,
        backend,
        calendar: Optional[GoogleCalendarClient] = None,
        *,
        config: Optional[BookingConfig] = None,
        tz_name: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.bookings = BookingRepository(backend)
        self.availability = AvailabilityRepository(backend)
        self.calendar = calendar
        self.config = config or settings.booking
        self.tz = pytz.timezone(tz_name or settings.business.timezone)
        self._clock = clock or utc_now
        self.guardrails = BookingGuardrailPipeline(self.config, self.tz)

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    # --- Availability ---

    async def get_availability(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        include_full: bool = False,
    ) -> list[DayAvailability]:
        """Bookable slots per date. Defaults to the next availability window from today."""
        start = start or self.today()
        end = end or start + timedelta(days=self.config.availability_window_days - 1)
        if end < start:
            raise ValidationError(
                "End date must be on or after start date", field_errors={"end": "Before start"}
            )
        if (end - start).days > self.config.max_advance_days:
            raise ValidationError(
                f"Date range cannot exceed {self.config.max_advance_days} days",
                field_errors={"end": "Range too large"},
            )

        templates = await self.availability.list_templates(active_only=True)
        blackouts = await self.availability.list_blackouts(start, end)
        bookings = await self.bookings.list_active_between(start, end)
        return compute_availability(
            start,
            end,
            templates,
            [b.date for b in blackouts],
            bookings,
            now=self.now(),
            tz=self.tz,
            min_advance_hours=self.config.min_advance_hours,
            max_advance_days=self.config.max_advance_days,
            include_full=include_full,
        )

    async def get_available_dates(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[date]:
        return get_available_dates(await self.get_availability(start, end))

    async def _slot_context(
        self, day: date, exclude_booking: Optional[str] = None
    ) -> tuple[list[TimeSlotTemplate], list[BlackoutDate], list[Booking]]:
        templates = await self.availability.list_templates(active_only=True)
        blackouts = await self.availability.list_blackouts(day, day)
        bookings = await self.bookings.list_active_between(day, day)
        if exclude_booking:
            bookings = [b for b in bookings if b.id != exclude_booking]
        return templates, blackouts, bookings

    # --- Submission ---

    async def submit_booking(self, payload: BookingCreate) -> Booking:
        """
        Validate, re-check capacity, insert, then create the calendar event.

        Raises:
            ValidationError: if any form field is missing or malformed.
            SlotUnavailableError: if the date/slot cannot be booked.
        """
        form = BookingFormManager()
        errors = form.load(payload)
        if errors:
            logger.info("Booking form rejected: %s", ", ".join(sorted(errors)))
        record = form.to_record()

        day = date.fromisoformat(record["preferred_date"])
        templates, blackouts, bookings = await self._slot_context(day)
        failures = self.guardrails.check_submission(
            record, templates=templates, blackouts=blackouts, bookings=bookings, now=self.now()
        )
        if failures:
            logger.info(
                "Booking for %s %s rejected: %s",
                day, record["preferred_time_slot"], ", ".join(f.violation_type for f in failures),
            )
        _raise_for_failures(failures)

        booking = await self.bookings.insert({
            **record,
            "status": BookingStatus.PENDING.value,
            "calendar_sync_status": CalendarSyncStatus.PENDING.value,
        })
        logger.info(
            "Booking created: %s for %s on %s at %s",
            booking.id, booking.business_name, booking.preferred_date, booking.preferred_time_slot,
        )

        if self.calendar is not None:
            booking = await self._create_calendar_event(booking)
        return booking

    async def _create_calendar_event(self, booking: Booking) -> Booking:
        """Best-effort event creation; a failure is recorded on the row, never raised."""
        try:
            event = await asyncio.to_thread(
                self.calendar.create_event, build_strategy_call_event(booking)
            )
        except CalendarError as e:
            logger.error("Calendar event for booking %s failed: %s", booking.id, e)
            values: dict[str, Any] = {
                "calendar_sync_status": CalendarSyncStatus.FAILED.value,
                "calendar_sync_error": str(e),
            }
        else:
            values = {
                "status": BookingStatus.CONFIRMED.value,
                "google_calendar_event_id": event.get("id"),
                "google_meet_link": extract_meet_link(event),
                "calendar_sync_status": CalendarSyncStatus.SYNCED.value,
                "calendar_sync_error": None,
            }

        try:
            return await self.bookings.update(booking.id, values)
        except ServiceError as e:
            logger.error("Could not record calendar result for booking %s: %s", booking.id, e)
            return booking

    # --- Admin: bookings ---

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.bookings.get(booking_id)

    async def list_bookings(
        self,
        filters: Optional[BookingFilters] = None,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Booking]:
        return await self.bookings.search(filters, limit=limit, offset=offset)

    async def update_status(
        self, booking_id: str, status: Any, note: Optional[str] = None
    ) -> Booking:
        """Move a booking through its lifecycle, optionally appending an admin note.

        Raises:
            InvalidTransitionError: if the change is not allowed.
            SlotUnavailableError: when re-activating a cancelled booking whose slot has filled.
        """
        booking = await self.bookings.get(booking_id)
        sm = BookingStatusMachine(booking.status)
        new_status = sm.transition(status)
        values: dict[str, Any] = {"status": new_status.value}
        if note and note.strip():
            entry = f"[{self.today().isoformat()}] {new_status.value}: {sanitize_text(note.strip())}"
            values["admin_notes"] = "\n".join(filter(None, [booking.admin_notes, entry]))

        if booking.status == BookingStatus.CANCELLED:
            templates, blackouts, bookings = await self._slot_context(booking.preferred_date)
            _raise_for_failures(self.guardrails.check_slot(
                booking.preferred_date, booking.preferred_time_slot,
                templates=templates, blackouts=blackouts, bookings=bookings, now=self.now(),
            ))

        if new_status == BookingStatus.CANCELLED and booking.google_calendar_event_id:
            values.update(await self._cancel_calendar_event(booking))

        updated = await self.bookings.update(booking_id, values)
        logger.info(
            "Booking %s status: %s -> %s", booking_id, booking.status.value, new_status.value
        )
        return updated

    async def _cancel_calendar_event(self, booking: Booking) -> dict[str, Any]:
        if self.calendar is None:
            return {}
        try:
            await asyncio.to_thread(self.calendar.delete_event, booking.google_calendar_event_id)
        except CalendarError as e:
            if e.error_type != CalendarErrorType.NOT_FOUND:
                logger.warning("Could not delete calendar event for %s: %s", booking.id, e)
                return {"calendar_sync_error": str(e)}
        return {
            "calendar_sync_status": CalendarSyncStatus.CANCELLED.value,
            "calendar_sync_error": None,
            "google_calendar_event_id": None,
            "google_meet_link": None,
        }

    async def reschedule_booking(self, booking_id: str, change: BookingReschedule) -> Booking:
        """Move a pending/confirmed booking to another date and slot."""
        booking = await self.bookings.get(booking_id)
        if booking.status not in RESCHEDULABLE:
            raise ValidationError(
                f"Cannot reschedule a {booking.status.value} booking",
                field_errors={"status": "Only pending or confirmed bookings can be rescheduled"},
            )
        try:
            day = date.fromisoformat(change.preferred_date)
            start, end = parse_time_slot(change.preferred_time_slot)
        except ValueError as e:
            raise ValidationError(str(e), field_errors={"preferred_date": str(e)}) from e
        time_slot = format_time_slot(start, end)
        if day == booking.preferred_date and time_slot == booking.preferred_time_slot:
            raise ValidationError("Booking is already scheduled for that time")

        templates, blackouts, bookings = await self._slot_context(day, exclude_booking=booking_id)
        _raise_for_failures(self.guardrails.check_slot(
            day, time_slot,
            templates=templates, blackouts=blackouts, bookings=bookings, now=self.now(),
        ))

        updated = await self.bookings.update(
            booking_id, {"preferred_date": day.isoformat(), "preferred_time_slot": time_slot}
        )
        logger.info(
            "Booking rescheduled: %s to %s %s", booking_id, day.isoformat(), time_slot
        )

        if self.calendar is None:
            return updated
        if not booking.google_calendar_event_id:
            return await self._create_calendar_event(updated)
        try:
            await asyncio.to_thread(
                self.calendar.update_event,
                booking.google_calendar_event_id,
                build_rescheduled_event(booking, updated),
            )
        except CalendarError as e:
            logger.error("Calendar update for booking %s failed: %s", booking_id, e)
            values = {
                "calendar_sync_status": CalendarSyncStatus.FAILED.value,
                "calendar_sync_error": str(e),
            }
        else:
            values = {"calendar_sync_status": CalendarSyncStatus.SYNCED.value, "calendar_sync_error": None}
        return await self.bookings.update(booking_id, values)

    async def retry_calendar_sync(self, booking_id: str) -> Booking:
        """Retry event creation for a booking whose calendar sync failed."""
        if self.calendar is None:
            raise ServiceError("Calendar integration is not configured", code="CALENDAR_DISABLED")
        booking = await self.bookings.get(booking_id)
        if booking.status not in RESCHEDULABLE or booking.google_calendar_event_id:
            raise ValidationError("Booking has no pending calendar sync")
        return await self._create_calendar_event(booking)

    async def schedule_follow_up(
        self,
        booking_id: str,
        starts_at: datetime,
        follow_up_type: FollowUpType = FollowUpType.PROPOSAL_REVIEW,
    ) -> dict[str, Optional[str]]:
        """Create a follow-up meeting for a confirmed or completed call."""
        if self.calendar is None:
            raise ServiceError("Calendar integration is not configured", code="CALENDAR_DISABLED")
        booking = await self.bookings.get(booking_id)
        if booking.status not in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
            raise ValidationError(
                f"Cannot schedule a follow-up for a {booking.status.value} booking"
            )
        try:
            event = await asyncio.to_thread(
                self.calendar.create_event,
                build_follow_up_event(booking, starts_at, follow_up_type),
            )
        except CalendarError as e:
            raise ServiceError(f"Calendar error: {e}", code=e.error_type.value.upper()) from e
        logger.info("Follow-up %s scheduled for booking %s", follow_up_type.value, booking_id)
        return {"event_id": event.get("id"), "meet_link": extract_meet_link(event)}

    async def list_calendar_events(self, start: date, end: date) -> list[dict[str, Any]]:
        """Raw calendar events in [start, end] for the admin calendar view."""
        if self.calendar is None:
            raise ServiceError("Calendar integration is not configured", code="CALENDAR_DISABLED")
        time_min = self.tz.localize(datetime.combine(start, time.min)).isoformat()
        time_max = self.tz.localize(datetime.combine(end + timedelta(days=1), time.min)).isoformat()
        try:
            return await asyncio.to_thread(self.calendar.list_events, time_min, time_max)
        except CalendarError as e:
            raise ServiceError(f"Calendar error: {e}", code=e.error_type.value.upper()) from e

    async def get_stats(self) -> BookingStats:
        return compute_booking_stats(await self.bookings.search(), today=self.today(), tz=self.tz)

    async def export_csv(self, filters: Optional[BookingFilters] = None) -> str:
        return bookings_to_csv(await self.bookings.search(filters))

    # --- Admin: availability ---

    async def list_templates(self) -> list[TimeSlotTemplate]:
        return await self.availability.list_templates()

    async def create_template(self, data: TimeSlotTemplateCreate) -> TimeSlotTemplate:
        template = await self.availability.create_template(data)
        logger.info("Time slot created: day %d %s", template.day_of_week,
                    format_time_slot(template.start_time, template.end_time))
        return template

    async def update_template(
        self, template_id: str, data: TimeSlotTemplateUpdate
    ) -> TimeSlotTemplate:
        return await self.availability.update_template(template_id, data)

    async def delete_template(self, template_id: str) -> None:
        await self.availability.delete_template(template_id)
        logger.info("Time slot deleted: %s", template_id)

    async def seed_default_templates(self) -> list[TimeSlotTemplate]:
        """Create the standard Mon-Fri 9-12 / 13-17 hourly slots that don't exist yet."""
        existing = {
            (t.day_of_week, format_time_slot(t.start_time, t.end_time))
            for t in await self.availability.list_templates()
        }
        created = []
        for dow in DEFAULT_WEEKDAYS:
            for start_hour, end_hour in DEFAULT_HOURS:
                start, end = time(start_hour), time(end_hour)
                if (dow, format_time_slot(start, end)) in existing:
                    continue
                created.append(await self.availability.create_template(TimeSlotTemplateCreate(
                    day_of_week=dow,
                    start_time=start,
                    end_time=end,
                    max_bookings_per_slot=self.config.default_max_bookings_per_slot,
                )))
        logger.info("Seeded %d default time slot(s)", len(created))
        return created

    async def list_blackouts(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[BlackoutDate]:
        return await self.availability.list_blackouts(start, end)

    async def add_blackout(self, data: BlackoutDateCreate) -> BlackoutDate:
        blackout = await self.availability.add_blackout(data)
        logger.info("Blackout date added: %s (%s)", blackout.date, blackout.reason or "no reason")
        return blackout

    async def remove_blackout(self, blackout_id: str) -> None:
        await self.availability.delete_blackout(blackout_id)

    async def import_holidays(self, year: int) -> list[BlackoutDate]:
        """Add Victorian public holidays for ``year`` as blackouts, skipping existing dates."""
        existing = {
            b.date for b in await self.availability.list_blackouts(date(year, 1, 1), date(year, 12, 31))
        }
        added = []
        for holiday in holidays_as_blackouts(year):
            if holiday.date in existing:
                continue
            added.append(await self.availability.add_blackout(holiday))
        logger.info("Imported %d holiday blackout(s) for %d", len(added), year)
        return added
