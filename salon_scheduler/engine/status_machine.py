"""
Appointment status state machine.

    requested -> confirmed -> checked_in -> in_progress -> completed

``cancelled`` and ``no_show`` are reachable from every non-terminal
status. ``completed``, ``cancelled`` and ``no_show`` are terminal.

Usage:
    validate_status_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.CHECKED_IN)
"""

import logging

from salon_scheduler.errors import InvalidTransitionError
from salon_scheduler.schemas.booking_schema import AppointmentStatus

logger = logging.getLogger(__name__)

_S = AppointmentStatus

TERMINAL_STATUSES = frozenset({_S.COMPLETED, _S.CANCELLED, _S.NO_SHOW})

_FORWARD: dict[AppointmentStatus, AppointmentStatus] = {
    _S.REQUESTED: _S.CONFIRMED,
    _S.CONFIRMED: _S.CHECKED_IN,
    _S.CHECKED_IN: _S.IN_PROGRESS,
    _S.IN_PROGRESS: _S.COMPLETED,
}

VALID_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    status: (
        frozenset()
        if status in TERMINAL_STATUSES
        else frozenset({_FORWARD[status], _S.CANCELLED, _S.NO_SHOW})
    )
    for status in AppointmentStatus
}


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition_to(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def validate_status_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Raises:
        InvalidTransitionError: If ``target`` is not reachable from ``current``.
    """
    if not can_transition_to(current, target):
        valid = sorted(s.value for s in VALID_TRANSITIONS[current])
        raise InvalidTransitionError(
            f"Cannot change status from '{current.value}' to '{target.value}'. "
            f"Valid targets: {valid}"
        )
    logger.debug("Status transition allowed: %s -> %s", current.value, target.value)
