"""
CLI entry point for booking reports.

Usage:
    python -m agency.reporting.run_report
    python -m agency.reporting.run_report --format csv --output bookings.csv --from 2025-01-01
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import pytz

from agency.backend.client import SupabaseClient
from agency.backend.repositories import BookingRepository
from agency.config import settings
from agency.errors import AgencyError
from agency.reporting.export import bookings_to_csv
from agency.reporting.metrics import compute_booking_stats, format_report
from agency.schemas.booking_schema import BookingFilters, BookingStatus
from agency.utils import utc_now

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise strategy-call bookings or export them as CSV."
    )
    parser.add_argument(
        "--format",
        choices=("text", "csv"),
        default="text",
        help="Output a summary report (text) or the matching bookings (csv).",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to write the output (default: stdout).",
    )
    parser.add_argument(
        "--from",
        dest="date_from",
        type=date.fromisoformat,
        default=None,
        help="Only bookings with a call date on or after YYYY-MM-DD.",
    )
    parser.add_argument(
        "--to",
        dest="date_to",
        type=date.fromisoformat,
        default=None,
        help="Only bookings with a call date on or before YYYY-MM-DD.",
    )
    parser.add_argument(
        "--status",
        action="append",
        choices=[s.value for s in BookingStatus],
        default=None,
        help="Restrict to a status (repeatable).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output.",
    )
    return parser


async def generate(args: argparse.Namespace, backend) -> str:
    """Fetch the matching bookings and render them in the requested format."""
    filters = BookingFilters(
        status=[BookingStatus(s) for s in args.status] if args.status else None,
        date_from=args.date_from,
        date_to=args.date_to,
    )
    bookings = await BookingRepository(backend).search(filters)
    logger.info("Loaded %d booking(s)", len(bookings))

    if args.format == "csv":
        return bookings_to_csv(bookings)
    tz = pytz.timezone(settings.business.timezone)
    stats = compute_booking_stats(bookings, today=utc_now().astimezone(tz).date(), tz=tz)
    return format_report(stats)


async def _run(args: argparse.Namespace) -> str:
    async with SupabaseClient.from_config(settings.backend) as backend:
        return await generate(args, backend)


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.date_from and args.date_to and args.date_to < args.date_from:
        logger.error("--to must be on or after --from")
        sys.exit(1)

    try:
        output = asyncio.run(_run(args))
    except AgencyError as e:
        logger.error("Report failed: %s", e.message)
        sys.exit(1)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(output, encoding="utf-8")
        logger.info("Report written to %s", output_path)
    else:
        sys.stdout.write(output if output.endswith("\n") else output + "\n")


if __name__ == "__main__":
    main()
