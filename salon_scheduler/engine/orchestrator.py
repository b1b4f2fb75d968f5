"""
Booking orchestrator: validate, re-price, re-check and commit appointments.

Slot generation and commit are separated by user think-time, so the
slot a client picked may be gone by the time they confirm. Every write
here therefore re-runs the availability check inside the appointment
store's conditional insert/update, and a lost race surfaces as
SlotConflictError with nothing written.

Usage:
    orchestrator = BookingOrchestrator(catalog, appointments)
    slots = orchestrator.availability.generate_slots(day, 60, "org-1")
    appointment = orchestrator.create_appointment(candidate)
    orchestrator.update_appointment_status(appointment.id, "checked_in")
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

from salon_scheduler.collaborators import (
    MULTI_STAFF_SCHEDULING,
    FeatureGate,
    LoggingNotifier,
    Notifier,
    StaticFeatureGate,
)
from salon_scheduler.config import settings
from salon_scheduler.engine.availability import (
    AvailabilityEngine,
    groomer_is_free,
    within_business_hours,
)
from salon_scheduler.engine.policy import (
    check_cancellation_window,
    compute_cancellation_fee,
    compute_deposit,
    compute_no_show_fee,
    hours_until,
    resolve_confirmation_mode,
    validate_advance_booking,
    validate_appointment_duration,
    validate_max_pets,
)
from salon_scheduler.engine.pricing import AppointmentTotal, compute_appointment_total
from salon_scheduler.engine.status_machine import is_terminal, validate_status_transition
from salon_scheduler.errors import (
    AppointmentNotFoundError,
    FeatureNotAvailableError,
    InvalidTransitionError,
    SlotConflictError,
    ValidationError,
)
from salon_scheduler.logging_context import get_request_logger, new_request_id
from salon_scheduler.schemas.booking_schema import (
    Appointment,
    AppointmentPet,
    AppointmentStatus,
    BookedService,
    BookingCandidate,
    PaymentStatus,
)
from salon_scheduler.schemas.catalog_schema import BusinessHours, Groomer, Service
from salon_scheduler.schemas.policy_schema import ConfirmationMode
from salon_scheduler.store.appointments import AppointmentStore
from salon_scheduler.store.catalog import CatalogStore
from salon_scheduler.utils import to_money

logger = get_request_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_business_hours(start: datetime, end: datetime, hours: BusinessHours) -> None:
    if not within_business_hours(start, end, hours):
        raise ValidationError(
            f"{start.isoformat()} - {end.isoformat()} is outside business hours"
        )


@dataclass(frozen=True)
class BookingQuote:
    """What a candidate would cost and how it would be confirmed, before commit."""

    totals: AppointmentTotal
    deposit: Decimal
    confirmation_mode: ConfirmationMode


class BookingOrchestrator:
    """Coordinates pricing, policy and availability to commit appointments safely."""

    def __init__(
        self,
        catalog: CatalogStore,
        appointments: AppointmentStore,
        notifier: Optional[Notifier] = None,
        feature_gate: Optional[FeatureGate] = None,
        clock: Callable[[], datetime] = _utcnow,
        max_appointment_minutes: Optional[int] = None,
    ) -> None:
        self._catalog = catalog
        self._appointments = appointments
        self._notifier = notifier or LoggingNotifier()
        self._feature_gate = feature_gate or StaticFeatureGate()
        self._clock = clock
        self._max_minutes = max_appointment_minutes or settings.scheduling.max_appointment_minutes
        self.availability = AvailabilityEngine(catalog, appointments)

    # --- Quote ---

    def quote(self, candidate: BookingCandidate) -> BookingQuote:
        """Price a candidate against the current active catalog."""
        policies = self._catalog.get_policies(candidate.organization_id)
        services = self._catalog.active_services(candidate.organization_id)
        totals = compute_appointment_total(candidate.pets, services)
        return BookingQuote(
            totals=totals,
            deposit=compute_deposit(totals.total_price, policies),
            confirmation_mode=resolve_confirmation_mode(candidate.is_new_client, policies),
        )

    # --- Create ---

    def _validate_candidate(self, candidate: BookingCandidate, now: datetime) -> None:
        if candidate.start_time.tzinfo is None:
            raise ValidationError("start_time must be timezone-aware")
        if not candidate.pets:
            raise ValidationError("At least one pet is required")
        empty = [p.pet_id for p in candidate.pets if not p.services]
        if empty:
            raise ValidationError(f"Pets without any selected service: {empty}")
        policies = self._catalog.get_policies(candidate.organization_id)
        validate_max_pets(len(candidate.pets), policies)
        validate_advance_booking(candidate.start_time, now, policies)

    def _resolve_population(
        self, candidate: BookingCandidate, services: dict[str, Service]
    ) -> list[Groomer]:
        """The requested groomer, or the capability-matching pool in preference order."""
        org = candidate.organization_id
        if candidate.groomer_id is not None:
            groomer = self._catalog.get_groomer(org, candidate.groomer_id)
            if groomer is None or not groomer.is_active:
                raise ValidationError(f"Groomer '{candidate.groomer_id}' is not bookable")
            return [groomer]

        categories = {
            services[selection.service_id].category
            for pet in candidate.pets
            for selection in pet.services
        }
        pool = self._catalog.get_capability_map(org).eligible(
            self._catalog.active_groomers(org), categories
        )
        if not pool:
            names = sorted(c.value for c in categories)
            raise ValidationError(f"No active groomer can perform categories {names}")
        return pool

    def create_appointment(self, candidate: BookingCandidate) -> Appointment:
        """
        Commit a new appointment.

        Totals are recomputed from the selections, the groomer is resolved
        (pinning a concrete groomer when none was requested) and the slot is
        re-checked atomically with the insert.

        Raises:
            ValidationError: Malformed candidate, booking-policy violation, or an
                interval outside business hours.
            UnknownServiceError, UnknownModifierError: Stale catalog reference.
            SlotConflictError: The slot is no longer free for any eligible groomer.
        """
        new_request_id("BOOK")
        now = self._clock()
        self._validate_candidate(candidate, now)

        org = candidate.organization_id
        policies = self._catalog.get_policies(org)
        services = self._catalog.active_services(org)
        totals = compute_appointment_total(candidate.pets, services)
        validate_appointment_duration(totals.total_duration, self._max_minutes)

        start = candidate.start_time
        end = start + timedelta(minutes=totals.total_duration)
        hours = self._catalog.get_business_hours(org)
        _require_business_hours(start, end, hours)
        population = self._resolve_population(candidate, services)
        by_id = {g.id: g for g in population}

        mode = resolve_confirmation_mode(candidate.is_new_client, policies)
        status = (
            AppointmentStatus.REQUESTED
            if mode == ConfirmationMode.REQUEST_ONLY
            else AppointmentStatus.CONFIRMED
        )
        pets = [
            AppointmentPet(
                pet_id=pet.pet_id,
                services=[
                    BookedService(
                        service_id=line.service_id,
                        modifier_ids=list(line.modifier_ids),
                        final_duration=line.duration,
                        final_price=line.price,
                    )
                    for line in pet.services
                ],
            )
            for pet in totals.per_pet
        ]

        def conflicts(groomer_id: str, existing: list[Appointment]) -> bool:
            return not groomer_is_free(by_id[groomer_id], start, end, existing, hours)

        def build(groomer_id: str) -> Appointment:
            return Appointment(
                id=f"APT-{uuid.uuid4().hex[:10].upper()}",
                organization_id=org,
                client_id=candidate.client_id,
                groomer_id=groomer_id,
                status=status,
                start_time=start,
                end_time=end,
                pets=pets,
                total_amount=to_money(totals.total_price + candidate.tip_amount),
                deposit_amount=compute_deposit(totals.total_price, policies),
                deposit_paid=candidate.payment_status == PaymentStatus.COMPLETED,
                tip_amount=candidate.tip_amount,
                payment_status=candidate.payment_status,
                client_notes=candidate.client_notes,
                created_at=now,
                updated_at=now,
            )

        appointment = self._appointments.insert_for_first_free(build, list(by_id), conflicts)
        if appointment is None:
            logger.warning(
                "Slot conflict for %s at %s (%d min), groomer=%s",
                org, start.isoformat(), totals.total_duration, candidate.groomer_id or "any",
            )
            raise SlotConflictError(
                "This time was just booked by someone else. Please choose a different slot."
            )

        logger.info(
            "Appointment %s committed: groomer=%s %s-%s status=%s total=%s",
            appointment.id, appointment.groomer_id, start.isoformat(), end.isoformat(),
            status.value, appointment.total_amount,
        )
        self._notify(self._notifier.appointment_booked, appointment)
        return appointment

    # --- Status ---

    def update_appointment_status(
        self,
        appointment_id: str,
        status: Union[AppointmentStatus, str],
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment through the status machine.

        Cancelling records the late-cancellation fee (past appointments
        cannot be cancelled); marking a no-show records the no-show fee.

        Raises:
            AppointmentNotFoundError: Unknown id.
            InvalidTransitionError: Terminal source or unreachable target.
            ValidationError: Cancellation outside the allowed window.
        """
        try:
            target = AppointmentStatus(status)
        except ValueError:
            raise InvalidTransitionError(f"Unknown appointment status: {status!r}") from None

        current = self._appointments.get(appointment_id)
        if current is None:
            raise AppointmentNotFoundError(appointment_id)
        policies = self._catalog.get_policies(current.organization_id)
        now = self._clock()
        previous: list[AppointmentStatus] = []

        def mutate(appointment: Appointment) -> Appointment:
            validate_status_transition(appointment.status, target)
            changes: dict = {"status": target, "updated_at": now}
            if notes is not None:
                changes["status_notes"] = notes
            fee_base = appointment.total_amount - appointment.tip_amount
            if target == AppointmentStatus.CANCELLED:
                check = check_cancellation_window(appointment, now, policies)
                if not check.can_cancel:
                    raise ValidationError(check.reason or "Cancellation is not allowed")
                changes["cancellation_fee"] = compute_cancellation_fee(
                    fee_base, hours_until(appointment.start_time, now), policies
                )
            elif target == AppointmentStatus.NO_SHOW:
                changes["no_show_fee"] = compute_no_show_fee(fee_base, policies)
            previous.append(appointment.status)
            return appointment.model_copy(update=changes)

        updated = self._appointments.update(appointment_id, mutate)
        logger.info(
            "Appointment %s status %s -> %s", appointment_id, previous[0].value, target.value
        )
        self._notify(self._notifier.status_changed, updated, previous[0])
        return updated

    # --- Reschedule ---

    def reschedule_appointment(
        self,
        appointment_id: str,
        new_start: datetime,
        groomer_id: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment to a new start (and optionally another groomer).

        The snapshotted duration is kept. Reassigning to a different groomer
        requires the multi-staff scheduling feature.

        Raises:
            AppointmentNotFoundError, InvalidTransitionError, ValidationError,
            FeatureNotAvailableError, SlotConflictError
        """
        new_request_id("RESCHED")
        current = self._appointments.get(appointment_id)
        if current is None:
            raise AppointmentNotFoundError(appointment_id)
        if is_terminal(current.status):
            raise InvalidTransitionError(
                f"Cannot reschedule an appointment that is {current.status.value}"
            )
        if new_start.tzinfo is None:
            raise ValidationError("new_start must be timezone-aware")

        org = current.organization_id
        target_id = groomer_id or current.groomer_id
        if target_id != current.groomer_id and not self._feature_gate.is_enabled(
            org, MULTI_STAFF_SCHEDULING
        ):
            raise FeatureNotAvailableError(
                "Reassigning appointments between groomers requires multi-staff scheduling"
            )
        groomer = self._catalog.get_groomer(org, target_id)
        if groomer is None or not groomer.is_active:
            raise ValidationError(f"Groomer '{target_id}' is not bookable")

        now = self._clock()
        validate_advance_booking(new_start, now, self._catalog.get_policies(org))
        hours = self._catalog.get_business_hours(org)
        new_end = new_start + (current.end_time - current.start_time)
        _require_business_hours(new_start, new_end, hours)

        def mutate(appointment: Appointment) -> Appointment:
            if is_terminal(appointment.status):
                raise InvalidTransitionError(
                    f"Cannot reschedule an appointment that is {appointment.status.value}"
                )
            return appointment.model_copy(update={
                "groomer_id": target_id,
                "start_time": new_start,
                "end_time": new_end,
                "updated_at": now,
            })

        def conflicts(_: str, existing: list[Appointment]) -> bool:
            return not groomer_is_free(groomer, new_start, new_end, existing, hours)

        updated = self._appointments.update(appointment_id, mutate, conflicts)
        if updated is None:
            logger.warning("Reschedule conflict for %s at %s", appointment_id, new_start.isoformat())
            raise SlotConflictError(
                "The new time is not available. Please choose a different slot."
            )
        logger.info(
            "Appointment %s rescheduled to %s with groomer %s",
            appointment_id, new_start.isoformat(), target_id,
        )
        return updated

    def _notify(self, send: Callable[..., None], *args) -> None:
        """Fire-and-forget: a failing notifier never undoes a committed write."""
        try:
            send(*args)
        except Exception:
            logger.exception("Notification failed for %s", send.__name__)
