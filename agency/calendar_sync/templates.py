"""Google Calendar event bodies built from booking data."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

import pytz

from agency.config import settings
from agency.schemas.booking_schema import Booking
from agency.tools.availability import display_time_slot, parse_time_slot
from agency.utils import format_australian_phone

RULE = "=" * 46
LOCATION = "Online via Google Meet"

CALL_AGENDA = [
    "Introductions & business overview (10 min)",
    "Current marketing audit & challenges (15 min)",
    "Competitor analysis discussion (10 min)",
    "Strategic recommendations (20 min)",
    "Next steps & proposal outline (5 min)",
]


class FollowUpType(str, Enum):
    PROPOSAL_REVIEW = "proposal-review"
    PROJECT_KICKOFF = "project-kickoff"
    CHECK_IN = "check-in"


FOLLOW_UP_TITLES: dict[FollowUpType, str] = {
    FollowUpType.PROPOSAL_REVIEW: "Proposal Review",
    FollowUpType.PROJECT_KICKOFF: "Project Kickoff",
    FollowUpType.CHECK_IN: "Check-in Call",
}

FOLLOW_UP_AGENDAS: dict[FollowUpType, list[str]] = {
    FollowUpType.PROPOSAL_REVIEW: [
        "Review custom marketing proposal",
        "Address questions and concerns",
        "Discuss implementation timeline",
        "Finalize project details and pricing",
    ],
    FollowUpType.PROJECT_KICKOFF: [
        "Welcome and project overview",
        "Set up communication channels",
        "Review project timeline and milestones",
        "Schedule regular check-ins",
    ],
    FollowUpType.CHECK_IN: [
        "Progress review since last meeting",
        "Address any challenges or concerns",
        "Plan next steps and priorities",
    ],
}


def _section(title: str, body: list[str]) -> list[str]:
    return [RULE, title, RULE, *body, ""]


def call_start(booking: Booking, tz_name: Optional[str] = None) -> datetime:
    """Timezone-aware start of the booked call."""
    tz = pytz.timezone(tz_name or settings.business.timezone)
    start, _ = parse_time_slot(booking.preferred_time_slot)
    return tz.localize(datetime.combine(booking.preferred_date, start))


def build_event_summary(booking: Booking) -> str:
    return f"Strategy Call - {booking.business_name}"


def build_event_description(booking: Booking) -> str:
    """Build the long-form description the agency reads before the call."""
    biz = settings.business
    start, end = parse_time_slot(booking.preferred_time_slot)

    business_lines = [
        f"Business: {booking.business_name}",
        f"Industry: {booking.business_type}",
        f"Location: {booking.business_location or 'Not specified'}",
    ]
    if booking.monthly_revenue_range:
        business_lines.append(f"Revenue Range: {booking.monthly_revenue_range}")

    prep_lines = [
        "Biggest Challenge:",
        f'"{booking.biggest_challenge or "Not specified"}"',
    ]
    if booking.current_marketing:
        prep_lines.append(f"Current Marketing: {', '.join(booking.current_marketing)}")
    if booking.additional_notes:
        prep_lines.append(f"Notes: {booking.additional_notes}")

    lines = [f"FREE STRATEGY CALL - {biz.name.upper()}", ""]
    lines += _section("CUSTOMER INFORMATION", [
        f"Name: {booking.customer_name}",
        f"Email: {booking.customer_email}",
        f"Phone: {format_australian_phone(booking.customer_phone)}",
    ])
    lines += _section("BUSINESS INFORMATION", business_lines)
    lines += _section("CALL PREPARATION", prep_lines)
    lines += _section(
        f"CALL AGENDA ({settings.booking.call_duration_minutes} MINUTES)",
        [f"- {item}" for item in CALL_AGENDA],
    )
    lines += _section("MEETING DETAILS", [
        f"Requested slot: {booking.preferred_date:%A %d %B %Y}, {display_time_slot(start, end)}",
        "Platform: Google Meet (link in this invite)",
        f"Time Zone: {biz.timezone}",
    ])
    lines += [
        RULE,
        "",
        f"Booking ID: {booking.id}",
        f"Booked via: {biz.site_url.rstrip('/')}/book-strategy-call",
        f"Support: {biz.admin_email} | {biz.contact_phone}",
    ]
    return "\n".join(lines)


def build_attendees(booking: Booking) -> list[dict[str, str]]:
    return [
        {"email": booking.customer_email, "displayName": booking.customer_name},
        {"email": settings.business.admin_email, "displayName": settings.business.name},
    ]


def _event_times(start: datetime, tz_name: str) -> dict[str, dict[str, str]]:
    end = start + timedelta(minutes=settings.booking.call_duration_minutes)
    return {
        "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
        "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
    }


def _meet_request(request_id: str) -> dict[str, Any]:
    return {
        "createRequest": {
            "requestId": request_id,
            "conferenceSolutionKey": {"type": "hangoutsMeet"},
        }
    }


def build_strategy_call_event(booking: Booking) -> dict[str, Any]:
    """Complete Calendar API event body for a booked strategy call."""
    tz_name = settings.business.timezone
    return {
        "summary": build_event_summary(booking),
        "description": build_event_description(booking),
        "location": LOCATION,
        **_event_times(call_start(booking, tz_name), tz_name),
        "attendees": build_attendees(booking),
        "conferenceData": _meet_request(f"strategy-call-{booking.id}"),
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "email", "minutes": 60},
                {"method": "popup", "minutes": 15},
            ],
        },
        "transparency": "opaque",
        "visibility": "private",
    }


def build_rescheduled_event(original: Booking, updated: Booking) -> dict[str, Any]:
    """Event body for a moved call, noting the original and new times."""
    event = build_strategy_call_event(updated)
    event["summary"] = f"[RESCHEDULED] {event['summary']}"
    event["description"] += (
        "\n\nRESCHEDULED:\n"
        f"Original: {original.preferred_date.isoformat()} {original.preferred_time_slot}\n"
        f"New: {updated.preferred_date.isoformat()} {updated.preferred_time_slot}"
    )
    return event


def build_follow_up_event(
    booking: Booking,
    starts_at: datetime,
    follow_up_type: FollowUpType = FollowUpType.PROPOSAL_REVIEW,
) -> dict[str, Any]:
    """Event body for a follow-up meeting after the strategy call."""
    title = FOLLOW_UP_TITLES[follow_up_type]
    tz_name = settings.business.timezone
    if starts_at.tzinfo is None:
        starts_at = pytz.timezone(tz_name).localize(starts_at)

    lines = [f"FOLLOW-UP CALL - {settings.business.name.upper()}", ""]
    lines += _section("CUSTOMER INFORMATION", [
        f"Name: {booking.customer_name}",
        f"Email: {booking.customer_email}",
        f"Business: {booking.business_name}",
    ])
    lines += _section("MEETING CONTEXT", [
        f"Meeting Type: {title}",
        f"Original Strategy Call: {booking.preferred_date.isoformat()} {booking.preferred_time_slot}",
        f'Original Challenge: "{booking.biggest_challenge}"',
    ])
    lines += _section("AGENDA", [f"- {item}" for item in FOLLOW_UP_AGENDAS[follow_up_type]])
    lines.append(f"Booking ID: {booking.id}")

    return {
        "summary": f"{title} - {booking.business_name}",
        "description": "\n".join(lines),
        "location": LOCATION,
        **_event_times(starts_at, tz_name),
        "attendees": build_attendees(booking),
        "conferenceData": _meet_request(
            f"followup-{follow_up_type.value}-{booking.id}-{int(starts_at.timestamp())}"
        ),
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 15},
            ],
        },
    }


def extract_meet_link(event: dict[str, Any]) -> Optional[str]:
    """Google Meet URL from a created event, if the conference was provisioned."""
    if event.get("hangoutLink"):
        return event["hangoutLink"]
    for entry in event.get("conferenceData", {}).get("entryPoints", []):
        if entry.get("entryPointType") == "video":
            return entry.get("uri")
    return None
