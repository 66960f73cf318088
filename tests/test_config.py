"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from agency.config import (
    AppConfig,
    BackendConfig,
    BookingConfig,
    BusinessConfig,
    CalendarConfig,
    _safe_bool,
    _safe_float,
    _safe_int,
    _split_list,
    _validate_config,
)


def booking_rules(**overrides) -> BookingConfig:
    values = dict(
        max_advance_days=60,
        min_advance_hours=24,
        call_duration_minutes=60,
        availability_window_days=14,
        default_max_bookings_per_slot=1,
    )
    values.update(overrides)
    return BookingConfig(**values)


class TestConfigValidation:
    def setup_method(self):
        self.config = AppConfig(
            business=BusinessConfig(timezone="Australia/Melbourne"),
            booking=booking_rules(),
            backend=BackendConfig(url="", key="", timeout_sec=10.0),
        )

    def test_default_config_passes_validation(self):
        _validate_config(self.config)  # should not raise

    def test_max_advance_days_must_be_positive(self):
        config = replace(self.config, booking=booking_rules(max_advance_days=0))
        with pytest.raises(ValueError, match="BOOKING_MAX_ADVANCE_DAYS"):
            _validate_config(config)

    def test_min_advance_hours_not_negative(self):
        config = replace(self.config, booking=booking_rules(min_advance_hours=-1))
        with pytest.raises(ValueError, match="BOOKING_MIN_ADVANCE_HOURS"):
            _validate_config(config)

    def test_call_duration_range(self):
        config = replace(self.config, booking=booking_rules(call_duration_minutes=5))
        with pytest.raises(ValueError, match="CALL_DURATION_MINUTES"):
            _validate_config(config)

    def test_window_cannot_exceed_horizon(self):
        config = replace(self.config, booking=booking_rules(availability_window_days=90))
        with pytest.raises(ValueError, match="AVAILABILITY_WINDOW_DAYS"):
            _validate_config(config)

    def test_slot_capacity_positive(self):
        config = replace(self.config, booking=booking_rules(default_max_bookings_per_slot=0))
        with pytest.raises(ValueError, match="DEFAULT_MAX_BOOKINGS_PER_SLOT"):
            _validate_config(config)

    def test_unknown_timezone(self):
        config = replace(self.config, business=BusinessConfig(timezone="Mars/Olympus_Mons"))
        with pytest.raises(ValueError, match="BUSINESS_TIMEZONE"):
            _validate_config(config)

    def test_backend_timeout_positive(self):
        config = replace(self.config, backend=BackendConfig(url="", key="", timeout_sec=0))
        with pytest.raises(ValueError, match="SUPABASE_TIMEOUT"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "42")
        assert _safe_int("TEST_INT", "1") == 42

    def test_safe_int_default(self, monkeypatch):
        monkeypatch.delenv("TEST_INT", raising=False)
        assert _safe_int("TEST_INT", "7") == 7

    def test_safe_int_invalid(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "lots")
        with pytest.raises(ValueError, match="Invalid integer for TEST_INT"):
            _safe_int("TEST_INT", "1")

    def test_safe_float_invalid(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT", "fast")
        with pytest.raises(ValueError, match="Invalid float for TEST_FLOAT"):
            _safe_float("TEST_FLOAT", "1.0")

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("1", True), ("YES", True), ("off", False), ("no", False),
    ])
    def test_safe_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("TEST_BOOL", raw)
        assert _safe_bool("TEST_BOOL", "false") is expected

    def test_split_list(self, monkeypatch):
        monkeypatch.setenv("TEST_ORIGINS", "https://a.example, https://b.example,,")
        assert _split_list("TEST_ORIGINS", "") == ("https://a.example", "https://b.example")


class TestConfiguredFlags:
    def test_backend_configured(self):
        assert BackendConfig(url="https://x.supabase.co", key="k").is_configured
        assert not BackendConfig(url="", key="k").is_configured

    def test_calendar_configured(self):
        config = CalendarConfig(enabled=True, calendar_id="cal", service_account_file="sa.json")
        assert config.is_configured

    def test_calendar_disabled(self):
        config = CalendarConfig(enabled=False, calendar_id="cal", service_account_file="sa.json")
        assert not config.is_configured

    def test_calendar_missing_credentials(self):
        config = CalendarConfig(enabled=True, calendar_id="cal", service_account_file="")
        assert not config.is_configured
