"""Shared utilities used across the booking and CMS services."""

import re
from datetime import datetime, timezone

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\bon\w+\s*=", re.IGNORECASE)


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def format_australian_phone(value: str) -> str:
    """Format an Australian number for display.

    Mobiles become ``04XX XXX XXX`` and landlines ``0X XXXX XXXX``.
    Numbers in +61 form are converted to the local form first. Anything
    that does not look like a 10-digit local number is returned as given.

        >>> format_australian_phone("+61412345678")
        '0412 345 678'
        >>> format_australian_phone("0398765432")
        '03 9876 5432'
    """
    digits = normalize_phone(value)
    if digits.startswith("+61"):
        digits = "0" + digits[3:]
    if len(digits) != 10 or not digits.startswith("0"):
        return value
    if digits.startswith("04"):
        return f"{digits[:4]} {digits[4:7]} {digits[7:]}"
    return f"{digits[:2]} {digits[2:6]} {digits[6:]}"


def sanitize_text(value: str) -> str:
    """Strip script blocks, HTML tags, javascript: URLs and inline handlers."""
    cleaned = _SCRIPT_RE.sub("", value)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    return cleaned.strip()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
