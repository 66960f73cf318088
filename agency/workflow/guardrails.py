"""
Submission guardrails for strategy-call bookings.

Four independent checks, each looking at one concern:
1. BookingWindowGuardrail: not in the past, far enough ahead, not too far out
2. BlackoutGuardrail:       the date is not blacked out
3. CapacityGuardrail:       the slot exists that weekday and has a seat left
4. SpamGuardrail:           link-stuffed or obviously automated submissions

These are composed into a BookingGuardrailPipeline that runs on freshly
fetched templates, blackouts and bookings just before the insert.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

import pytz

from agency.config import BookingConfig, settings
from agency.schemas.booking_schema import BlackoutDate, Booking, TimeSlotTemplate
from agency.tools.availability import (
    count_active_bookings,
    expand_slots_for_date,
    find_slot,
    parse_time_slot,
    slot_start,
)

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"(https?://|www\.)", re.IGNORECASE)
MAX_LINKS_IN_TEXT = 2

# Violations that mean "pick another slot" rather than "fix your input"
SLOT_VIOLATIONS = frozenset(
    {"past_date", "too_soon", "too_far_ahead", "blackout_date", "no_such_slot", "slot_full"}
)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None
    field: Optional[str] = None
    severity: str = "block"  # "warning" | "block"


class BookingWindowGuardrail:
    """Keeps bookings between the minimum notice and the advance-booking horizon."""

    def __init__(self, config: BookingConfig, tz) -> None:
        self.config = config
        self.tz = tz

    def check(self, day: date, start: time, now: datetime) -> GuardrailResult:
        starts_at = slot_start(day, start, self.tz)
        if starts_at < now:
            return GuardrailResult(
                passed=False,
                violation_type="past_date",
                message="Please select a future date",
                field="preferred_date",
            )
        if starts_at < now + timedelta(hours=self.config.min_advance_hours):
            return GuardrailResult(
                passed=False,
                violation_type="too_soon",
                message=(
                    f"Bookings must be made at least {self.config.min_advance_hours} "
                    "hours in advance"
                ),
                field="preferred_time_slot",
            )
        latest = now.astimezone(self.tz).date() + timedelta(days=self.config.max_advance_days)
        if day > latest:
            return GuardrailResult(
                passed=False,
                violation_type="too_far_ahead",
                message=(
                    f"Bookings can only be made up to {self.config.max_advance_days} "
                    "days in advance"
                ),
                field="preferred_date",
            )
        return GuardrailResult(passed=True)


class BlackoutGuardrail:
    """Rejects dates the agency has blacked out."""

    def check(self, day: date, blackouts: Iterable[BlackoutDate]) -> GuardrailResult:
        for blackout in blackouts:
            if blackout.date == day:
                logger.info("Booking requested on blackout date %s", day)
                return GuardrailResult(
                    passed=False,
                    violation_type="blackout_date",
                    message=blackout.reason or "This date is not available",
                    field="preferred_date",
                )
        return GuardrailResult(passed=True)


class CapacityGuardrail:
    """Confirms the slot is offered on that weekday and still has room."""

    def check(
        self,
        day: date,
        time_slot: str,
        templates: list[TimeSlotTemplate],
        bookings: Iterable[Booking],
    ) -> GuardrailResult:
        slots = expand_slots_for_date(day, templates, set(), count_active_bookings(bookings))
        slot = find_slot(slots, time_slot)
        if slot is None:
            return GuardrailResult(
                passed=False,
                violation_type="no_such_slot",
                message="Selected time slot is not offered on this date",
                field="preferred_time_slot",
            )
        if not slot.available:
            logger.info("Slot %s %s is full (%d booked)", day, time_slot, slot.booked_count)
            return GuardrailResult(
                passed=False,
                violation_type="slot_full",
                message="Selected time slot is no longer available. Please choose another time.",
                field="preferred_time_slot",
            )
        return GuardrailResult(passed=True)


class SpamGuardrail:
    """Flags submissions that look automated."""

    NAME_FIELDS = ("customer_name", "business_name")
    TEXT_FIELDS = ("biggest_challenge", "additional_notes")

    def check(self, record: dict[str, Any]) -> GuardrailResult:
        for name in self.NAME_FIELDS:
            if URL_RE.search(record.get(name) or ""):
                return GuardrailResult(
                    passed=False,
                    violation_type="suspicious_content",
                    message="Links are not allowed in this field",
                    field=name,
                )
        links = sum(len(URL_RE.findall(record.get(name) or "")) for name in self.TEXT_FIELDS)
        if links > MAX_LINKS_IN_TEXT:
            logger.warning("Submission rejected with %d links", links)
            return GuardrailResult(
                passed=False,
                violation_type="suspicious_content",
                message="Please remove links from your message",
                field="biggest_challenge",
            )
        return GuardrailResult(passed=True)


class BookingGuardrailPipeline:
    """Runs every submission guardrail and returns the failures."""

    def __init__(self, config: Optional[BookingConfig] = None, tz=None) -> None:
        self.config = config or settings.booking
        self.tz = tz or pytz.timezone(settings.business.timezone)
        self.window = BookingWindowGuardrail(self.config, self.tz)
        self.blackout = BlackoutGuardrail()
        self.capacity = CapacityGuardrail()
        self.spam = SpamGuardrail()

    def check_slot(
        self,
        day: date,
        time_slot: str,
        *,
        templates: list[TimeSlotTemplate],
        blackouts: list[BlackoutDate],
        bookings: list[Booking],
        now: datetime,
    ) -> list[GuardrailResult]:
        """Date/time checks shared by new bookings and reschedules."""
        start, _ = parse_time_slot(time_slot)
        results = [
            self.window.check(day, start, now),
            self.blackout.check(day, blackouts),
            self.capacity.check(day, time_slot, templates, bookings),
        ]
        return [r for r in results if not r.passed]

    def check_submission(
        self,
        record: dict[str, Any],
        *,
        templates: list[TimeSlotTemplate],
        blackouts: list[BlackoutDate],
        bookings: list[Booking],
        now: datetime,
    ) -> list[GuardrailResult]:
        """Full pre-insert check for a validated booking record."""
        failures = [r for r in [self.spam.check(record)] if not r.passed]
        failures.extend(self.check_slot(
            date.fromisoformat(record["preferred_date"]),
            record["preferred_time_slot"],
            templates=templates,
            blackouts=blackouts,
            bookings=bookings,
            now=now,
        ))
        return failures
