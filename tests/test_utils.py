"""Tests for shared utility functions, errors and logging context."""

import logging

from agency.errors import (
    AgencyError,
    NotFoundError,
    ServiceError,
    SlotUnavailableError,
    ValidationError,
    from_backend_error,
)
from agency.logging_context import (
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    set_request_id,
)
from agency.utils import format_australian_phone, normalize_phone, sanitize_text


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("0412 345 678") == "0412345678"

    def test_strips_dashes(self):
        assert normalize_phone("0412-345-678") == "0412345678"

    def test_strips_parentheses(self):
        assert normalize_phone("(03) 9123 4567") == "0391234567"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+61 412 345 678") == "+61412345678"

    def test_strips_whitespace(self):
        assert normalize_phone("  0412345678  ") == "0412345678"


class TestFormatAustralianPhone:
    def test_mobile(self):
        assert format_australian_phone("0412345678") == "0412 345 678"

    def test_landline(self):
        assert format_australian_phone("0398765432") == "03 9876 5432"

    def test_international_mobile(self):
        assert format_australian_phone("+61412345678") == "0412 345 678"

    def test_unrecognised_returned_as_is(self):
        assert format_australian_phone("12345") == "12345"


class TestSanitizeText:
    def test_plain_text_unchanged(self):
        assert sanitize_text("We need more leads") == "We need more leads"

    def test_script_blocks_removed(self):
        assert sanitize_text("<script>alert('x')</script>Hello") == "Hello"

    def test_tags_removed(self):
        assert sanitize_text("<b>Bold</b> claim") == "Bold claim"

    def test_javascript_protocol_and_handlers_removed(self):
        cleaned = sanitize_text("javascript:run() onclick=steal()")
        assert "javascript:" not in cleaned
        assert "onclick=" not in cleaned

    def test_strips_whitespace(self):
        assert sanitize_text("  padded  ") == "padded"


class TestErrors:
    def test_to_dict(self):
        error = ValidationError("Bad input", field_errors={"email": "Invalid"})
        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "Bad input",
            "field_errors": {"email": "Invalid"},
        }

    def test_code_override(self):
        assert ServiceError("x", code="CALENDAR_DISABLED").code == "CALENDAR_DISABLED"

    def test_slot_unavailable_is_validation_error(self):
        error = SlotUnavailableError("Full")
        assert isinstance(error, ValidationError)
        assert error.code == "SLOT_UNAVAILABLE"
        assert "field_errors" not in error.to_dict()

    def test_backend_not_found(self):
        assert isinstance(from_backend_error("PGRST116", "0 rows"), NotFoundError)

    def test_backend_duplicate(self):
        error = from_backend_error("23505", "duplicate key value violates unique constraint")
        assert isinstance(error, ValidationError)
        assert error.code == "DUPLICATE_ENTRY"

    def test_backend_foreign_key(self):
        error = from_backend_error(None, "insert violates foreign key constraint")
        assert error.code == "INVALID_REFERENCE"

    def test_backend_check_constraint(self):
        error = from_backend_error("23514", "new row violates check constraint")
        assert isinstance(error, ValidationError)

    def test_backend_unknown(self):
        error = from_backend_error("XX000", "")
        assert isinstance(error, ServiceError)
        assert error.code == "XX000"
        assert "Unknown database error" in error.message

    def test_all_errors_share_base(self):
        for cls in (ValidationError, SlotUnavailableError, NotFoundError, ServiceError):
            assert issubclass(cls, AgencyError)


class TestRequestContext:
    def test_set_and_get(self):
        assert set_request_id("REQ-test") == "REQ-test"
        assert get_request_id() == "REQ-test"

    def test_generated_id(self):
        request_id = set_request_id()
        assert request_id.startswith("REQ-")
        assert len(request_id) == 16

    def test_filter_adds_request_id(self):
        set_request_id("REQ-filter")
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "REQ-filter"

    def test_request_logger_has_single_filter(self):
        logger = get_request_logger("agency.test")
        get_request_logger("agency.test")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1
