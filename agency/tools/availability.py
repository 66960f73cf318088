"""
Strategy-call availability computation.

Expands weekly time-slot templates into concrete per-day slots, removes
blackout dates, and subtracts active bookings to get the remaining
capacity of every slot. Everything here is pure: callers fetch templates,
blackouts and bookings from the backend and pass them in.

Usage:
    days = compute_availability(
        start, end, templates, blackout_dates, bookings,
        now=datetime.now(pytz.utc), tz=pytz.timezone("Australia/Melbourne"),
    )
    open_dates = get_available_dates(days)
"""

import logging
import re
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Optional

from agency.schemas.booking_schema import (
    AvailableSlot,
    Booking,
    BookingStatus,
    DayAvailability,
    TimeSlotTemplate,
)

logger = logging.getLogger(__name__)

# Indexed by day_of_week (0=Sunday)
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_TIME_SLOT_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)-([01]\d|2[0-3]):([0-5]\d)$")


def day_of_week(day: date) -> int:
    """Weekday number with Sunday as 0, matching the templates table."""
    return (day.weekday() + 1) % 7


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_time_slot(start: time, end: time) -> str:
    return f"{start:%H:%M}-{end:%H:%M}"


def parse_time_slot(value: str) -> tuple[time, time]:
    """Parse ``"09:00-10:00"`` into start and end times.

    Raises:
        ValueError: if the value is malformed or end is not after start.
    """
    match = _TIME_SLOT_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time slot: {value!r} (expected HH:MM-HH:MM)")
    start = time(int(match.group(1)), int(match.group(2)))
    end = time(int(match.group(3)), int(match.group(4)))
    if end <= start:
        raise ValueError(f"Invalid time slot: {value!r} (end must be after start)")
    return start, end


def display_time(value: time) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def display_time_slot(start: time, end: time) -> str:
    """Human-readable slot, e.g. ``9:00 AM - 10:00 AM``."""
    return f"{display_time(start)} - {display_time(end)}"


def slot_start(day: date, start: time, tz) -> datetime:
    """Localize a slot's start in the business timezone (a pytz zone)."""
    return tz.localize(datetime.combine(day, start))


def count_active_bookings(bookings: Iterable[Booking]) -> Counter:
    """Count non-cancelled bookings per (date, time slot)."""
    counts: Counter = Counter()
    for booking in bookings:
        if booking.status == BookingStatus.CANCELLED:
            continue
        counts[(booking.preferred_date, booking.preferred_time_slot)] += 1
    return counts


def expand_slots_for_date(
    day: date,
    templates: Iterable[TimeSlotTemplate],
    blackout_dates: set[date],
    booked_counts: Counter,
) -> list[AvailableSlot]:
    """Materialize every enabled template for ``day`` with its remaining capacity.

    Returns an empty list for blackout dates. Templates sharing the same
    start/end on one weekday are collapsed to the first one.
    """
    if day in blackout_dates:
        return []

    dow = day_of_week(day)
    matching = sorted(
        (t for t in templates if t.day_of_week == dow and t.is_available),
        key=lambda t: (t.start_time, t.end_time),
    )

    slots: list[AvailableSlot] = []
    seen: set[str] = set()
    for template in matching:
        value = format_time_slot(template.start_time, template.end_time)
        if value in seen:
            logger.warning("Duplicate template %s for %s ignored", value, WEEKDAY_NAMES[dow])
            continue
        seen.add(value)

        booked = booked_counts.get((day, value), 0)
        remaining = max(0, template.max_bookings_per_slot - booked)
        slots.append(AvailableSlot(
            date=day,
            time_slot=value,
            display=display_time_slot(template.start_time, template.end_time),
            start_time=template.start_time,
            end_time=template.end_time,
            max_bookings=template.max_bookings_per_slot,
            booked_count=booked,
            available_count=remaining,
            available=remaining > 0,
        ))
    return slots


def compute_availability(
    start: date,
    end: date,
    templates: list[TimeSlotTemplate],
    blackout_dates: Iterable[date],
    bookings: Iterable[Booking],
    *,
    now: datetime,
    tz,
    min_advance_hours: int = 0,
    max_advance_days: Optional[int] = None,
    include_full: bool = False,
) -> list[DayAvailability]:
    """
    Compute bookable slots for every date in [start, end].

    Slots starting before ``now + min_advance_hours`` and dates later than
    ``max_advance_days`` from today are dropped. Full slots are only kept
    when ``include_full`` is set. Dates with nothing left are omitted.
    """
    blackouts = set(blackout_dates)
    counts = count_active_bookings(bookings)
    earliest = now + timedelta(hours=min_advance_hours)
    latest_date = None
    if max_advance_days is not None:
        latest_date = now.astimezone(tz).date() + timedelta(days=max_advance_days)

    days: list[DayAvailability] = []
    for day in iter_dates(start, end):
        if latest_date is not None and day > latest_date:
            break
        slots = [
            s for s in expand_slots_for_date(day, templates, blackouts, counts)
            if slot_start(day, s.start_time, tz) >= earliest
            and (include_full or s.available)
        ]
        if slots:
            days.append(DayAvailability(
                date=day, day_name=WEEKDAY_NAMES[day_of_week(day)], slots=slots
            ))

    logger.debug(
        "Computed availability %s..%s: %d day(s) with slots", start, end, len(days)
    )
    return days


def find_slot(slots: Iterable[AvailableSlot], time_slot: str) -> Optional[AvailableSlot]:
    for slot in slots:
        if slot.time_slot == time_slot:
            return slot
    return None


def is_slot_available(
    day: date,
    time_slot: str,
    templates: list[TimeSlotTemplate],
    blackout_dates: Iterable[date],
    bookings: Iterable[Booking],
) -> bool:
    """True if ``time_slot`` exists on ``day`` and has capacity left."""
    slots = expand_slots_for_date(
        day, templates, set(blackout_dates), count_active_bookings(bookings)
    )
    slot = find_slot(slots, time_slot)
    return slot is not None and slot.available


def get_available_dates(days: Iterable[DayAvailability], limit: Optional[int] = None) -> list[date]:
    """Dates that still have at least one open slot, in order."""
    dates = [d.date for d in days if d.has_open_slots]
    return dates[:limit] if limit is not None else dates
