"""
Offline console demo: runs the strategy-call booking flow without any credentials.

Uses the real booking service, availability computation, guardrails and
status machine on top of in-memory tables. Calendar events are recorded
locally instead of being sent to Google.

Usage:
    python console_demo.py
    python console_demo.py --scenario full-slot
    python console_demo.py --scenario reschedule
"""

import argparse
import asyncio
import itertools
from datetime import timedelta
from typing import Any, Optional

from agency.backend.memory import InMemoryBackend
from agency.config import settings
from agency.errors import AgencyError
from agency.reporting.metrics import format_report
from agency.schemas.booking_schema import (
    AvailableSlot,
    BookingCreate,
    BookingReschedule,
    BookingStatus,
)
from agency.tools.booking import BookingService
from agency.workflow.status_machine import BookingStatusMachine

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_CUSTOMERS = [
    {
        "customer_name": "Sarah Nguyen",
        "customer_email": "sarah@brunswickbakehouse.com.au",
        "customer_phone": "0412 345 678",
        "business_name": "Brunswick Bakehouse",
        "business_type": "Hospitality & Food",
        "business_location": "Brunswick, VIC",
        "current_marketing": ["Social Media", "Word of Mouth"],
        "biggest_challenge": "Weekday foot traffic has dropped since the new shopping centre opened.",
        "monthly_revenue_range": "$5,000 - $20,000",
    },
    {
        "customer_name": "Tom O'Brien",
        "customer_email": "tom@obrienplumbing.com.au",
        "customer_phone": "03 9123 4567",
        "business_name": "O'Brien Plumbing",
        "business_type": "Trades & Services",
        "business_location": "Geelong, VIC",
        "current_marketing": ["Google Ads"],
        "biggest_challenge": "Paying for clicks but the phone is not ringing with real jobs.",
        "monthly_revenue_range": "$20,000 - $50,000",
    },
]


class DemoCalendar:
    """Records calendar calls in memory and hands back fake Meet links."""

    def __init__(self) -> None:
        self.events: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def create_event(self, body: dict[str, Any]) -> dict[str, Any]:
        event_id = f"demo-event-{next(self._ids)}"
        event = {**body, "id": event_id, "hangoutLink": "https://meet.google.com/" + event_id}
        self.events[event_id] = event
        return event

    def update_event(self, event_id: str, body: dict[str, Any]) -> dict[str, Any]:
        self.events[event_id] = {**self.events.get(event_id, {}), **body, "id": event_id}
        return self.events[event_id]

    def delete_event(self, event_id: str) -> None:
        self.events.pop(event_id, None)

    def list_events(self, time_min: str, time_max: str) -> list[dict[str, Any]]:
        return list(self.events.values())


class ConsoleSession:
    """Walks through the booking lifecycle in the terminal."""

    SCENARIOS = ("booking", "full-slot", "reschedule")

    def __init__(self) -> None:
        self.backend = InMemoryBackend()
        self.calendar = DemoCalendar()
        self.service = BookingService(self.backend, self.calendar)

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Booking]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def warn(self, text: str) -> None:
        print(f"{RED}{BOLD}[Rejected]{RESET} {RED}{text}{RESET}")

    def banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    async def setup(self) -> None:
        templates = await self.service.seed_default_templates()
        self.system_log(f"Seeded {len(templates)} weekly time slots (Mon-Fri)")
        today = self.service.today()
        horizon = today + timedelta(days=self.service.config.max_advance_days)
        for year in sorted({today.year, horizon.year}):
            added = await self.service.import_holidays(year)
            self.system_log(f"Imported {len(added)} public holidays for {year}")

    async def show_availability(self) -> list[AvailableSlot]:
        days = await self.service.get_availability()
        open_slots = []
        print(f"\n{BOLD}Availability for the next {len(days)} bookable day(s):{RESET}")
        for day in days[:5]:
            labels = ", ".join(
                f"{s.display} ({s.available_count} left)" for s in day.slots if s.available
            )
            print(f"  {YELLOW}{day.day_name} {day.date.isoformat()}{RESET}: {labels or 'fully booked'}")
            open_slots.extend(s for s in day.slots if s.available)
        return open_slots

    def _payload(self, customer: dict[str, Any], slot: AvailableSlot) -> BookingCreate:
        return BookingCreate(
            **customer,
            preferred_date=slot.date.isoformat(),
            preferred_time_slot=slot.time_slot,
        )

    async def submit(self, customer: dict[str, Any], slot: AvailableSlot):
        print(f"\n{BLUE}[Website]{RESET} {customer['business_name']} requests "
              f"{slot.date.isoformat()} {slot.display}")
        try:
            booking = await self.service.submit_booking(self._payload(customer, slot))
        except AgencyError as e:
            self.warn(f"{e.code}: {e.message}")
            return None
        self.say(f"Booking {booking.id[:8]} is {booking.status.value}")
        self.system_log(f"Calendar sync: {booking.calendar_sync_status.value}")
        if booking.google_meet_link:
            self.system_log(f"Meet link: {booking.google_meet_link}")
        return booking

    async def run_scenario(self, scenario: str) -> None:
        self.banner(f"STRATEGY CALL BOOKING - Scenario: {scenario}")
        await self.setup()
        open_slots = await self.show_availability()
        if not open_slots:
            self.warn("No open slots in the availability window")
            return

        if scenario == "full-slot":
            await self.submit(DEMO_CUSTOMERS[0], open_slots[0])
            await self.submit(DEMO_CUSTOMERS[1], open_slots[0])
        elif scenario == "reschedule":
            booking = await self.submit(DEMO_CUSTOMERS[0], open_slots[0])
            if booking and len(open_slots) > 1:
                target = open_slots[1]
                print(f"\n{BLUE}[Admin]{RESET} Move to {target.date.isoformat()} {target.display}")
                booking = await self.service.reschedule_booking(
                    booking.id,
                    BookingReschedule(
                        preferred_date=target.date.isoformat(),
                        preferred_time_slot=target.time_slot,
                    ),
                )
                self.say(f"Now {booking.preferred_date.isoformat()} {booking.preferred_time_slot}")
                await self.show_availability()
        else:
            booking = await self.submit(DEMO_CUSTOMERS[0], open_slots[0])
            if booking:
                await self.walk_lifecycle(booking.id, [BookingStatus.COMPLETED])
            booking = await self.submit(DEMO_CUSTOMERS[1], open_slots[-1])
            if booking:
                await self.walk_lifecycle(booking.id, [BookingStatus.CANCELLED])

        print()
        print(format_report(await self.service.get_stats()))
        print(f"{DIM}  Calendar events on record: {len(self.calendar.events)}{RESET}")

    async def walk_lifecycle(self, booking_id: str, targets: list[BookingStatus]) -> None:
        trace = BookingStatusMachine((await self.service.get_booking(booking_id)).status)
        for target in targets:
            print(f"\n{BLUE}[Admin]{RESET} Mark as {target.value}")
            try:
                booking = await self.service.update_status(booking_id, target)
            except AgencyError as e:
                self.warn(e.message)
                return
            trace.transition(booking.status)
            self.say(f"Booking {booking_id[:8]} is {booking.status.value}")
        self.system_log(f"Status trace: {' -> '.join(trace.get_status_trace())}")
        self.system_log(
            "Allowed next: "
            + (", ".join(s.value for s in trace.get_allowed_targets()) or "none (terminal)")
        )


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline strategy-call booking demo")
    parser.add_argument(
        "--scenario",
        choices=ConsoleSession.SCENARIOS,
        default="booking",
        help="Which walkthrough to run.",
    )
    args = parser.parse_args(argv)
    asyncio.run(ConsoleSession().run_scenario(args.scenario))


if __name__ == "__main__":
    main()
