from agency.reporting.export import bookings_to_csv
from agency.reporting.metrics import compute_booking_stats, format_report

__all__ = ["bookings_to_csv", "compute_booking_stats", "format_report"]
