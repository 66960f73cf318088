"""
Strategy-call form manager with a Collect -> Validate -> Normalize pattern.

Each form field has a definition (label, required flag, validator,
normalizer). Values are validated one at a time so the API can return
a per-field error map, and only a fully valid form can be turned into a
booking record.

Usage:
    form = BookingFormManager()
    errors = form.load(payload)
    if not errors:
        record = form.to_record()
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional

from agency.errors import ValidationError
from agency.schemas.booking_schema import BookingCreate
from agency.tools.availability import format_time_slot, parse_time_slot
from agency.tools.catalog import (
    BUSINESS_TYPES,
    MARKETING_CHANNELS,
    REVENUE_RANGES,
    canonical_option,
)
from agency.utils import normalize_phone, sanitize_text

logger = logging.getLogger(__name__)

# Validation thresholds
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_BUSINESS_NAME_LENGTH = 200
MAX_LOCATION_LENGTH = 200
MIN_CHALLENGE_LENGTH = 10
MAX_CHALLENGE_LENGTH = 500
MAX_NOTES_LENGTH = 1000
MAX_EMAIL_LENGTH = 320
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 12

EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
AU_PHONE_RE = re.compile(r"^(?:\+61|0)[2-478](?:[ -]?\d){8}$")
PERSON_NAME_RE = re.compile(r"^[a-zA-Z\s\-'.]+$")


class FieldStatus(str, Enum):
    EMPTY = "empty"
    INVALID = "invalid"
    VALID = "valid"


def _length_check(label: str, min_len: int, max_len: int) -> Callable[[str], Optional[str]]:
    def check(value: str) -> Optional[str]:
        if len(value) < min_len:
            return f"{label} must be at least {min_len} characters"
        if len(value) > max_len:
            return f"{label} must be no more than {max_len} characters"
        return None
    return check


def _validate_person_name(value: str) -> Optional[str]:
    error = _length_check("Name", MIN_NAME_LENGTH, MAX_NAME_LENGTH)(value)
    if error:
        return error
    if not PERSON_NAME_RE.match(value):
        return "Name contains invalid characters"
    return None


def _validate_email(value: str) -> Optional[str]:
    if len(value) > MAX_EMAIL_LENGTH or not EMAIL_RE.match(value):
        return "Please enter a valid email address"
    return None


def _validate_phone(value: str) -> Optional[str]:
    cleaned = re.sub(r"[\s\-()]", "", value)
    if not MIN_PHONE_DIGITS <= len(cleaned) <= MAX_PHONE_DIGITS or not AU_PHONE_RE.match(value):
        return "Please enter a valid Australian phone number"
    return None


def _option_check(label: str, options: list[str]) -> Callable[[str], Optional[str]]:
    def check(value: str) -> Optional[str]:
        if canonical_option(value, options) is None:
            return f"Please select a valid {label.lower()}"
        return None
    return check


def _validate_channels(value: Any) -> Optional[str]:
    if not isinstance(value, (list, tuple)):
        return "Marketing channels must be a list"
    for item in value:
        if canonical_option(str(item), MARKETING_CHANNELS) is None:
            return f"Invalid marketing channel selection: {item}"
    return None


def _validate_date(value: str) -> Optional[str]:
    try:
        date.fromisoformat(value)
    except ValueError:
        return "Please select a valid date (YYYY-MM-DD)"
    return None


def _validate_time_slot(value: str) -> Optional[str]:
    try:
        parse_time_slot(value)
    except ValueError:
        return "Please select a valid time slot"
    return None


def _normalize_channels(value: list) -> tuple[str, ...]:
    seen: list[str] = []
    for item in value:
        option = canonical_option(str(item), MARKETING_CHANNELS)
        if option and option not in seen:
            seen.append(option)
    return tuple(seen)


@dataclass(frozen=True)
class FieldDefinition:
    """Schema for a single booking form field."""

    name: str
    label: str
    required: bool = True
    validator: Optional[Callable[[Any], Optional[str]]] = None
    normalizer: Optional[Callable[[Any], Any]] = None
    sanitize: bool = False
    empty_value: Any = None


@dataclass
class FieldValue:
    """Current state of a submitted field."""

    raw_value: Any = None
    normalized_value: Any = None
    status: FieldStatus = FieldStatus.EMPTY
    error: Optional[str] = None
    attempts: int = 0


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


class BookingFormManager:
    """
    Validates and normalizes a strategy-call form submission.

    A booking record is only produced when every field is valid; the
    error map uses the same field names as the payload.
    """

    FIELD_DEFINITIONS: list[FieldDefinition] = [
        FieldDefinition(
            name="customer_name",
            label="Name",
            validator=_validate_person_name,
            sanitize=True,
        ),
        FieldDefinition(
            name="customer_email",
            label="Email",
            validator=_validate_email,
            normalizer=lambda v: v.lower(),
        ),
        FieldDefinition(
            name="customer_phone",
            label="Phone number",
            validator=_validate_phone,
            normalizer=normalize_phone,
        ),
        FieldDefinition(
            name="business_name",
            label="Business name",
            validator=_length_check("Business name", MIN_NAME_LENGTH, MAX_BUSINESS_NAME_LENGTH),
            sanitize=True,
        ),
        FieldDefinition(
            name="business_type",
            label="Business type",
            validator=_option_check("Business type", BUSINESS_TYPES),
            normalizer=lambda v: canonical_option(v, BUSINESS_TYPES),
        ),
        FieldDefinition(
            name="business_location",
            label="Business location",
            validator=_length_check("Business location", MIN_NAME_LENGTH, MAX_LOCATION_LENGTH),
            sanitize=True,
        ),
        FieldDefinition(
            name="current_marketing",
            label="Current marketing",
            required=False,
            validator=_validate_channels,
            normalizer=_normalize_channels,
            empty_value=(),
        ),
        FieldDefinition(
            name="biggest_challenge",
            label="Biggest challenge",
            validator=_length_check(
                "Biggest challenge", MIN_CHALLENGE_LENGTH, MAX_CHALLENGE_LENGTH
            ),
            sanitize=True,
        ),
        FieldDefinition(
            name="monthly_revenue_range",
            label="Monthly revenue range",
            validator=_option_check("Monthly revenue range", REVENUE_RANGES),
            normalizer=lambda v: canonical_option(v, REVENUE_RANGES),
        ),
        FieldDefinition(
            name="preferred_date",
            label="Preferred date",
            validator=_validate_date,
            normalizer=lambda v: date.fromisoformat(v).isoformat(),
        ),
        FieldDefinition(
            name="preferred_time_slot",
            label="Preferred time slot",
            validator=_validate_time_slot,
            normalizer=lambda v: format_time_slot(*parse_time_slot(v)),
        ),
        FieldDefinition(
            name="additional_notes",
            label="Additional notes",
            required=False,
            validator=_length_check("Additional notes", 0, MAX_NOTES_LENGTH),
            sanitize=True,
        ),
    ]

    def __init__(self) -> None:
        self.fields: dict[str, FieldValue] = {
            defn.name: FieldValue() for defn in self.FIELD_DEFINITIONS
        }

    def _get_definition(self, name: str) -> FieldDefinition:
        for defn in self.FIELD_DEFINITIONS:
            if defn.name == name:
                return defn
        raise ValueError(f"Unknown field: {name}")

    def set_field(self, name: str, raw_value: Any) -> tuple[bool, str]:
        """
        Set a field value with validation.

        Returns:
            (success, message), where message is the error on failure.
        """
        defn = self._get_definition(name)
        field_value = self.fields[name]
        field_value.raw_value = raw_value
        field_value.attempts += 1

        value = raw_value.strip() if isinstance(raw_value, str) else raw_value
        if defn.sanitize and isinstance(value, str):
            value = sanitize_text(value)

        if _is_empty(value):
            field_value.normalized_value = defn.empty_value
            if defn.required:
                field_value.status = FieldStatus.EMPTY
                field_value.error = f"{defn.label} is required"
                return False, field_value.error
            field_value.status = FieldStatus.VALID
            field_value.error = None
            return True, f"{defn.label} left blank"

        error = defn.validator(value) if defn.validator else None
        if error:
            field_value.status = FieldStatus.INVALID
            field_value.normalized_value = None
            field_value.error = error
            logger.debug("Field '%s' validation failed: %s", name, error)
            return False, error

        field_value.normalized_value = defn.normalizer(value) if defn.normalizer else value
        field_value.status = FieldStatus.VALID
        field_value.error = None
        return True, f"Got {defn.label.lower()}"

    def load(self, payload: BookingCreate) -> dict[str, str]:
        """Validate every field of a submission and return the error map."""
        for defn in self.FIELD_DEFINITIONS:
            self.set_field(defn.name, getattr(payload, defn.name))
        return self.get_errors()

    def get_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for defn in self.FIELD_DEFINITIONS:
            field_value = self.fields[defn.name]
            if field_value.error:
                errors[defn.name] = field_value.error
            elif defn.required and field_value.status == FieldStatus.EMPTY:
                errors[defn.name] = f"{defn.label} is required"
        return errors

    def get_missing_fields(self) -> list[FieldDefinition]:
        """Required fields that are still empty."""
        return [
            defn
            for defn in self.FIELD_DEFINITIONS
            if defn.required and self.fields[defn.name].status == FieldStatus.EMPTY
        ]

    def all_required_filled(self) -> bool:
        return all(
            self.fields[d.name].status == FieldStatus.VALID
            for d in self.FIELD_DEFINITIONS
            if d.required
        )

    def is_valid(self) -> bool:
        return not self.get_errors()

    def get_field_value(self, name: str) -> Any:
        return self.fields[name].normalized_value

    def to_record(self) -> dict[str, Any]:
        """Export the normalized form as a booking row.

        Raises:
            ValidationError: if any field is missing or invalid.
        """
        errors = self.get_errors()
        if errors:
            raise ValidationError("Please correct the highlighted fields.", field_errors=errors)
        record: dict[str, Any] = {}
        for defn in self.FIELD_DEFINITIONS:
            value = self.fields[defn.name].normalized_value
            record[defn.name] = list(value) if isinstance(value, tuple) else value
        return record

    def get_stats(self) -> dict[str, Any]:
        """Field completion statistics for the submission log."""
        required = [d for d in self.FIELD_DEFINITIONS if d.required]
        filled = sum(1 for d in required if self.fields[d.name].status == FieldStatus.VALID)
        invalid = sum(1 for f in self.fields.values() if f.status == FieldStatus.INVALID)
        return {
            "total_attempts": sum(f.attempts for f in self.fields.values()),
            "fields_valid": filled,
            "fields_invalid": invalid,
            "fields_required": len(required),
            "fill_rate": filled / len(required) if required else 0,
        }


def validate_booking_form(payload: BookingCreate) -> dict[str, Any]:
    """Validate a submission in one call and return the booking row."""
    form = BookingFormManager()
    errors = form.load(payload)
    if errors:
        logger.info("Booking form rejected: %s", ", ".join(sorted(errors)))
    return form.to_record()
