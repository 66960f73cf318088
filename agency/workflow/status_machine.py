"""
Finite state machine for the booking status lifecycle.

A booking starts as ``pending`` and moves only along explicitly listed
edges. Admin status changes go through this machine so an invalid
change (e.g. completing a cancelled call) is rejected with a clear list
of what is allowed instead.

Usage:
    sm = BookingStatusMachine(BookingStatus.PENDING)
    sm.transition(BookingStatus.CONFIRMED)
    assert sm.current_status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from agency.errors import ValidationError
from agency.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


@dataclass
class StatusTransition:
    """A single valid status change."""
    from_status: BookingStatus
    to_status: BookingStatus


@dataclass
class StatusEntry:
    """Recorded history entry for a status change."""
    status: BookingStatus
    entered_at: datetime
    previous: Optional[BookingStatus] = None


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current status."""

    code = "INVALID_STATUS_TRANSITION"


def parse_status(value: Union[str, BookingStatus]) -> BookingStatus:
    """Coerce a raw value to a BookingStatus, rejecting anything else."""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationError(
            f"Invalid booking status {value!r}. Allowed: {allowed}",
            field_errors={"status": "Invalid status"},
        ) from None


class BookingStatusMachine:
    """Deterministic state machine over the five booking statuses."""

    TRANSITIONS: list[StatusTransition] = [
        # --- Back to pending (e.g. calendar invite needs re-sending) ---
        StatusTransition(BookingStatus.CONFIRMED, BookingStatus.PENDING),
        StatusTransition(BookingStatus.CANCELLED, BookingStatus.PENDING),

        # --- Confirmation ---
        StatusTransition(BookingStatus.PENDING, BookingStatus.CONFIRMED),
        StatusTransition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED),

        # --- Outcome of the call ---
        StatusTransition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        StatusTransition(BookingStatus.CONFIRMED, BookingStatus.NO_SHOW),

        # --- Cancellation ---
        StatusTransition(BookingStatus.PENDING, BookingStatus.CANCELLED),
        StatusTransition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    ]

    TERMINAL: frozenset[BookingStatus] = frozenset(
        {BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
    )

    def __init__(self, status: Union[str, BookingStatus] = BookingStatus.PENDING) -> None:
        self._current_status = parse_status(status)
        self._history: list[StatusEntry] = [
            StatusEntry(status=self._current_status, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_status(self) -> BookingStatus:
        return self._current_status

    def transition(self, target: Union[str, BookingStatus]) -> BookingStatus:
        """
        Move to ``target``.

        Returns:
            The new booking status.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        target = parse_status(target)
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.to_status == target:
                old_status = self._current_status
                self._current_status = target
                self._history.append(StatusEntry(
                    status=target,
                    entered_at=datetime.now(timezone.utc),
                    previous=old_status,
                ))
                logger.debug("Status transition: %s -> %s", old_status.value, target.value)
                return self._current_status

        allowed = [s.value for s in self.get_allowed_targets()]
        raise InvalidTransitionError(
            f"Cannot change booking status from '{self._current_status.value}' "
            f"to '{target.value}'. Allowed: {allowed}",
            field_errors={"status": f"Not allowed from {self._current_status.value}"},
        )

    def can_transition(self, target: Union[str, BookingStatus]) -> bool:
        return parse_status(target) in self.get_allowed_targets()

    def get_allowed_targets(self) -> list[BookingStatus]:
        """Return all statuses reachable from the current one."""
        return [t.to_status for t in self.TRANSITIONS if t.from_status == self._current_status]

    def get_history(self) -> list[StatusEntry]:
        return list(self._history)

    def get_status_trace(self) -> list[str]:
        """Return ordered list of status names visited."""
        return [entry.status.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Completed and no-show bookings accept no further changes."""
        return self._current_status in self.TERMINAL


def allowed_sources(target: Union[str, BookingStatus]) -> list[BookingStatus]:
    """Statuses from which ``target`` can be reached."""
    target = parse_status(target)
    return [t.from_status for t in BookingStatusMachine.TRANSITIONS if t.to_status == target]
