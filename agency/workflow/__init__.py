from agency.workflow.form_manager import BookingFormManager, FieldStatus
from agency.workflow.guardrails import BookingGuardrailPipeline, GuardrailResult
from agency.workflow.status_machine import (
    BookingStatusMachine,
    InvalidTransitionError,
    parse_status,
)

__all__ = [
    "BookingStatusMachine",
    "InvalidTransitionError",
    "parse_status",
    "BookingFormManager",
    "FieldStatus",
    "BookingGuardrailPipeline",
    "GuardrailResult",
]
