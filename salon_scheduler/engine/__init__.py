from salon_scheduler.engine.availability import AvailabilityEngine
from salon_scheduler.engine.orchestrator import BookingOrchestrator, BookingQuote
from salon_scheduler.engine.policy import (
    compute_cancellation_fee,
    compute_deposit,
    compute_no_show_fee,
    resolve_confirmation_mode,
)
from salon_scheduler.engine.pricing import compute_appointment_total, compute_service_total
from salon_scheduler.engine.status_machine import (
    VALID_TRANSITIONS,
    can_transition_to,
    validate_status_transition,
)

__all__ = [
    "AvailabilityEngine",
    "BookingOrchestrator",
    "BookingQuote",
    "compute_service_total",
    "compute_appointment_total",
    "compute_deposit",
    "compute_cancellation_fee",
    "compute_no_show_fee",
    "resolve_confirmation_mode",
    "VALID_TRANSITIONS",
    "can_transition_to",
    "validate_status_transition",
]
