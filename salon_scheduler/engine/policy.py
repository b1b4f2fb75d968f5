"""
Policy engine: deposits, fees, confirmation mode and booking-window rules.

All functions are pure lookups over an organization's BookingPolicies.
Monetary results are rounded to cents.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from salon_scheduler.errors import ValidationError
from salon_scheduler.schemas.booking_schema import Appointment, AppointmentStatus
from salon_scheduler.schemas.policy_schema import BookingPolicies, ConfirmationMode
from salon_scheduler.utils import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

_FINALIZED_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})


@dataclass(frozen=True)
class CancellationCheck:
    """Whether an appointment may be cancelled now, and whether it counts as late."""

    can_cancel: bool
    is_late: bool
    reason: Optional[str] = None


def _percent_of(total: Decimal, percentage: Decimal) -> Decimal:
    return total * percentage / Decimal(100)


def compute_deposit(total: Decimal, policies: BookingPolicies) -> Decimal:
    """
    Deposit owed for a booking total.

    Zero when deposits are off. Otherwise the larger of the percentage
    deposit and the minimum, never more than the total itself. Always
    rounded to cents.
    """
    if not policies.deposit_required or total <= 0:
        return ZERO
    amount = to_money(max(_percent_of(total, policies.deposit_percentage), policies.deposit_minimum))
    return min(amount, to_money(total))


def resolve_confirmation_mode(is_new_client: bool, policies: BookingPolicies) -> ConfirmationMode:
    """Return whether a booking auto-confirms or is held as a request."""
    return policies.new_client_mode if is_new_client else policies.existing_client_mode


def compute_cancellation_fee(
    total: Decimal, hours_until_appointment: float, policies: BookingPolicies
) -> Decimal:
    """Late-cancellation fee; zero when cancelled at or beyond the window."""
    if hours_until_appointment >= policies.cancellation_window_hours:
        return ZERO
    return to_money(_percent_of(total, policies.late_cancellation_fee_percentage))


def compute_no_show_fee(total: Decimal, policies: BookingPolicies) -> Decimal:
    """No-show fee, charged unconditionally."""
    return to_money(_percent_of(total, policies.no_show_fee_percentage))


def hours_until(start_time: datetime, now: datetime) -> float:
    return (start_time - now) / timedelta(hours=1)


def validate_max_pets(pet_count: int, policies: BookingPolicies) -> None:
    if pet_count > policies.max_pets_per_appointment:
        raise ValidationError(
            f"Maximum {policies.max_pets_per_appointment} pets per appointment"
        )


def validate_advance_booking(start_time: datetime, now: datetime, policies: BookingPolicies) -> None:
    """Reject starts that are too soon or too far ahead."""
    lead = start_time - now
    if lead / timedelta(hours=1) < policies.min_advance_booking_hours:
        raise ValidationError(
            "Appointments must be booked at least "
            f"{policies.min_advance_booking_hours} hours in advance"
        )
    if lead.days > policies.max_advance_booking_days:
        raise ValidationError(
            "Appointments cannot be booked more than "
            f"{policies.max_advance_booking_days} days in advance"
        )


def validate_appointment_duration(total_minutes: int, max_minutes: int) -> None:
    if total_minutes <= 0:
        raise ValidationError(
            f"Appointment duration must be positive, got {total_minutes} minutes"
        )
    if total_minutes > max_minutes:
        raise ValidationError(
            f"Appointment duration ({total_minutes} minutes) exceeds the maximum "
            f"allowed duration of {max_minutes} minutes"
        )


def check_cancellation_window(
    appointment: Appointment, now: datetime, policies: BookingPolicies
) -> CancellationCheck:
    if appointment.status in _FINALIZED_STATUSES:
        return CancellationCheck(False, False, "Appointment already finalized")
    if appointment.start_time <= now:
        return CancellationCheck(False, False, "Cannot cancel past appointments")
    is_late = hours_until(appointment.start_time, now) < policies.cancellation_window_hours
    return CancellationCheck(True, is_late)


def generate_policy_text(policies: BookingPolicies) -> str:
    """Client-facing summary of the organization's booking policies."""
    parts: list[str] = []

    if policies.deposit_required:
        parts.append(
            f"A {policies.deposit_percentage}% deposit (minimum ${policies.deposit_minimum}) "
            "is required to confirm your appointment."
        )
    if policies.cancellation_window_hours > 0:
        parts.append(
            f"Cancellations made less than {policies.cancellation_window_hours} hours in "
            f"advance are subject to a {policies.late_cancellation_fee_percentage}% "
            "cancellation fee."
        )
    if policies.no_show_fee_percentage > 0:
        parts.append(
            f"No-shows will be charged {policies.no_show_fee_percentage}% of the "
            "appointment total."
        )
    if policies.new_client_mode == ConfirmationMode.REQUEST_ONLY:
        parts.append(
            "New client appointments require confirmation from our team before "
            "they are finalized."
        )

    return " ".join(parts)
