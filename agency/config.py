"""
Centralized configuration with environment variable overrides.

Business details, booking rules, backend credentials and calendar
settings are all configurable here. Nothing is hardcoded in the
booking, availability or CMS logic.
"""

import logging
import os
from dataclasses import dataclass, field

import pytz
from dotenv import load_dotenv

from agency.logging_context import install_request_id_filter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


def _split_list(env_var: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(env_var, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class BusinessConfig:
    """Agency details used in calendar invites and reports."""

    name: str = os.getenv("BUSINESS_NAME", "Local Marketing Co")
    admin_email: str = os.getenv("ADMIN_EMAIL", "hello@localmarketing.com.au")
    contact_phone: str = os.getenv("CONTACT_PHONE", "03 9000 0000")
    site_url: str = os.getenv("SITE_URL", "https://localmarketing.com.au")
    timezone: str = os.getenv("BUSINESS_TIMEZONE", "Australia/Melbourne")


@dataclass(frozen=True)
class BookingConfig:
    """Strategy-call booking rules."""

    max_advance_days: int = _safe_int("BOOKING_MAX_ADVANCE_DAYS", "60")
    min_advance_hours: int = _safe_int("BOOKING_MIN_ADVANCE_HOURS", "24")
    call_duration_minutes: int = _safe_int("CALL_DURATION_MINUTES", "60")
    availability_window_days: int = _safe_int("AVAILABILITY_WINDOW_DAYS", "14")
    default_max_bookings_per_slot: int = _safe_int("DEFAULT_MAX_BOOKINGS_PER_SLOT", "1")


@dataclass(frozen=True)
class BackendConfig:
    """Remote database (Supabase REST) connection settings."""

    url: str = os.getenv("SUPABASE_URL", "")
    key: str = os.getenv("SUPABASE_KEY", "")
    timeout_sec: float = _safe_float("SUPABASE_TIMEOUT", "10.0")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


@dataclass(frozen=True)
class CalendarConfig:
    """Google Calendar service-account settings."""

    enabled: bool = _safe_bool("CALENDAR_ENABLED", "true")
    calendar_id: str = os.getenv("GOOGLE_CALENDAR_ID", "")
    service_account_file: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "")

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.calendar_id and self.service_account_file)


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    admin_api_token: str = os.getenv("ADMIN_API_TOKEN", "")
    allowed_origins: tuple[str, ...] = _split_list(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "agency-site")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    booking = config.booking
    if booking.max_advance_days < 1:
        raise ValueError(
            f"BOOKING_MAX_ADVANCE_DAYS must be >= 1, got {booking.max_advance_days}"
        )
    if booking.min_advance_hours < 0:
        raise ValueError(
            f"BOOKING_MIN_ADVANCE_HOURS must be >= 0, got {booking.min_advance_hours}"
        )
    if not 15 <= booking.call_duration_minutes <= 480:
        raise ValueError(
            "CALL_DURATION_MINUTES must be between 15 and 480, "
            f"got {booking.call_duration_minutes}"
        )
    if not 1 <= booking.availability_window_days <= booking.max_advance_days:
        raise ValueError(
            "AVAILABILITY_WINDOW_DAYS must be between 1 and BOOKING_MAX_ADVANCE_DAYS, "
            f"got {booking.availability_window_days}"
        )
    if booking.default_max_bookings_per_slot < 1:
        raise ValueError(
            "DEFAULT_MAX_BOOKINGS_PER_SLOT must be >= 1, "
            f"got {booking.default_max_bookings_per_slot}"
        )
    if config.business.timezone not in pytz.all_timezones_set:
        raise ValueError(f"Unknown BUSINESS_TIMEZONE: {config.business.timezone!r}")
    if config.backend.timeout_sec <= 0:
        raise ValueError(
            f"SUPABASE_TIMEOUT must be > 0, got {config.backend.timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_request_id_filter()
    if not config.backend.is_configured:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; remote backend unavailable")
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
