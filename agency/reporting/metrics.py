"""
Booking dashboard figures.

Counts per status, recent volume (week starting Sunday, calendar month),
upcoming calls, average lead time between submission and the call,
the most requested time slots and the business-type mix.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional

from agency.config import settings
from agency.schemas.booking_schema import (
    Booking,
    BookingStats,
    BookingStatus,
    CalendarSyncStatus,
    TimeSlotCount,
)

logger = logging.getLogger(__name__)

TOP_TIME_SLOTS = 5
UPCOMING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def start_of_week(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _created_on(booking: Booking, tz=None) -> date:
    created: datetime = booking.created_at
    if tz is not None and created.tzinfo is not None:
        created = created.astimezone(tz)
    return created.date()


def compute_booking_stats(bookings: list[Booking], today: date, tz=None) -> BookingStats:
    """Aggregate ``bookings`` as seen on ``today``."""
    if not bookings:
        return BookingStats(by_status={s.value: 0 for s in BookingStatus})

    week_start = start_of_week(today)
    month_start = today.replace(day=1)
    by_status = Counter(b.status.value for b in bookings)

    lead_times = [
        max(0, (b.preferred_date - _created_on(b, tz)).days) for b in bookings
    ]
    slots = Counter(b.preferred_time_slot for b in bookings)
    business_types = Counter(b.business_type or "Unknown" for b in bookings)

    return BookingStats(
        total=len(bookings),
        by_status={s.value: by_status.get(s.value, 0) for s in BookingStatus},
        this_week=sum(1 for b in bookings if _created_on(b, tz) >= week_start),
        this_month=sum(1 for b in bookings if _created_on(b, tz) >= month_start),
        upcoming=sum(
            1 for b in bookings if b.preferred_date >= today and b.status in UPCOMING_STATUSES
        ),
        average_lead_time_days=round(sum(lead_times) / len(lead_times), 1),
        popular_time_slots=[
            TimeSlotCount(time_slot=slot, count=count)
            for slot, count in slots.most_common(TOP_TIME_SLOTS)
        ],
        business_types=dict(business_types.most_common()),
        calendar_sync_failures=sum(
            1 for b in bookings if b.calendar_sync_status == CalendarSyncStatus.FAILED
        ),
    )


def conversion_rate(stats: BookingStats) -> float:
    """Share of decided calls that were completed (completed / completed + no-show)."""
    completed = stats.by_status.get(BookingStatus.COMPLETED.value, 0)
    no_show = stats.by_status.get(BookingStatus.NO_SHOW.value, 0)
    return completed / max(completed + no_show, 1)


def format_report(stats: BookingStats, title: Optional[str] = None) -> str:
    """Format booking stats into a human-readable report."""
    lines = [
        "=" * 60,
        title or f"{settings.business.name.upper()} BOOKING REPORT",
        "=" * 60,
        "",
        "VOLUME",
        f"  Total bookings:         {stats.total}",
        f"  Created this week:      {stats.this_week}",
        f"  Created this month:     {stats.this_month}",
        f"  Upcoming calls:         {stats.upcoming}",
        f"  Avg lead time:          {stats.average_lead_time_days:.1f} days",
        "",
        "STATUS",
    ]
    for status, count in stats.by_status.items():
        lines.append(f"  {status + ':':<24}{count}")
    lines.append(f"  {'Show-up rate:':<24}{conversion_rate(stats):.1%}")

    lines += ["", "POPULAR TIME SLOTS"]
    if stats.popular_time_slots:
        for entry in stats.popular_time_slots:
            lines.append(f"  {entry.time_slot:<24}{entry.count}")
    else:
        lines.append("  (none)")

    lines += ["", "BUSINESS TYPES"]
    if stats.business_types:
        for business_type, count in stats.business_types.items():
            lines.append(f"  {business_type[:22]:<24}{count}")
    else:
        lines.append("  (none)")

    lines += [
        "",
        "CALENDAR",
        f"  Sync failures:          {stats.calendar_sync_failures}",
    ]
    if stats.calendar_sync_failures:
        lines.append("  WARNING: some bookings have no calendar event")
    lines += ["", "=" * 60]
    return "\n".join(lines)
