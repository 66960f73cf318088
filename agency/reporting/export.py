"""CSV export of bookings for the admin dashboard."""

import csv
import io

from agency.schemas.booking_schema import Booking
from agency.utils import format_australian_phone

CSV_COLUMNS = [
    ("Booking ID", "id"),
    ("Created", "created_at"),
    ("Status", "status"),
    ("Call Date", "preferred_date"),
    ("Time Slot", "preferred_time_slot"),
    ("Name", "customer_name"),
    ("Email", "customer_email"),
    ("Phone", "customer_phone"),
    ("Business", "business_name"),
    ("Business Type", "business_type"),
    ("Location", "business_location"),
    ("Revenue Range", "monthly_revenue_range"),
    ("Current Marketing", "current_marketing"),
    ("Biggest Challenge", "biggest_challenge"),
    ("Notes", "additional_notes"),
    ("Calendar Sync", "calendar_sync_status"),
    ("Meet Link", "google_meet_link"),
]


FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _escape(text: str) -> str:
    """Keep spreadsheets from evaluating customer text as a formula."""
    return "'" + text if text.startswith(FORMULA_PREFIXES) else text


def _cell(booking: Booking, attr: str) -> str:
    value = getattr(booking, attr)
    if value is None:
        return ""
    if attr == "customer_phone":
        return format_australian_phone(value)
    if attr == "current_marketing":
        return "; ".join(value)
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def bookings_to_csv(bookings: list[Booking]) -> str:
    """Render bookings as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for booking in bookings:
        writer.writerow([_escape(_cell(booking, attr)) for _, attr in CSV_COLUMNS])
    return buffer.getvalue()
