"""Tests for committing, updating and rescheduling appointments."""

import logging
import threading
from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest

from salon_scheduler.collaborators import StaticFeatureGate
from salon_scheduler.engine.orchestrator import BookingOrchestrator
from salon_scheduler.errors import (
    AppointmentNotFoundError,
    FeatureNotAvailableError,
    InvalidTransitionError,
    SlotConflictError,
    UnknownModifierError,
    UnknownServiceError,
    ValidationError,
)
from salon_scheduler.schemas.booking_schema import AppointmentStatus, PaymentStatus
from salon_scheduler.schemas.catalog_schema import (
    BusinessHours,
    DaySchedule,
    GroomerAvailability,
    ServiceCategory,
)
from salon_scheduler.schemas.policy_schema import BookingPolicies, ConfirmationMode
from tests.conftest import (
    FIXED_NOW,
    ORG,
    at,
    insert,
    make_appointment,
    make_candidate,
    make_groomer,
    make_modifier,
    make_service,
)


class RecordingNotifier:
    def __init__(self):
        self.booked = []
        self.changed = []

    def appointment_booked(self, appointment):
        self.booked.append(appointment.id)

    def status_changed(self, appointment, previous):
        self.changed.append((appointment.id, previous, appointment.status))


class BrokenNotifier:
    def appointment_booked(self, appointment):
        raise RuntimeError("smtp down")

    def status_changed(self, appointment, previous):
        raise RuntimeError("smtp down")


class TestQuote:
    def test_quote_prices_candidate(self, orchestrator, catalog):
        catalog.set_policies(BookingPolicies(
            organization_id=ORG, deposit_required=True, deposit_minimum=Decimal("15"),
        ))
        quote = orchestrator.quote(make_candidate(at(10), is_new_client=True))
        assert quote.totals.total_duration == 45
        assert quote.totals.total_price == Decimal("50")
        assert quote.deposit == Decimal("15.00")
        assert quote.confirmation_mode == ConfirmationMode.REQUEST_ONLY


class TestCreateAppointment:
    """Successful commits and what the stored record holds."""

    def test_commits_with_recomputed_totals(self, orchestrator, appointments):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))

        assert appointment.groomer_id == "grm-a"
        assert appointment.start_time == at(10)
        assert appointment.end_time == at(10, 45)
        assert appointment.total_amount == Decimal("50")
        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.id.startswith("APT-")
        assert appointment.created_at == FIXED_NOW
        assert appointments.get(appointment.id) == appointment

    def test_modifiers_and_pets_add_up(self, orchestrator, catalog):
        catalog.add_service(make_service(modifiers=[
            make_modifier("mod-large", duration=15, adjustment="10"),
        ]))
        appointment = orchestrator.create_appointment(make_candidate(
            at(10), services=[("svc-bath", ["mod-large"])], pet_ids=("pet-1", "pet-2"),
        ))
        assert appointment.end_time == at(12)
        assert appointment.total_amount == Decimal("120")
        assert [p.pet_id for p in appointment.pets] == ["pet-1", "pet-2"]
        assert appointment.pets[0].services[0].final_duration == 60

    def test_tip_added_to_total(self, orchestrator):
        appointment = orchestrator.create_appointment(
            make_candidate(at(10), tip_amount=Decimal("10"))
        )
        assert appointment.total_amount == Decimal("60")
        assert appointment.tip_amount == Decimal("10")

    def test_deposit_and_paid_flag(self, orchestrator, catalog):
        catalog.set_policies(BookingPolicies(
            organization_id=ORG, deposit_required=True, deposit_minimum=Decimal("15"),
        ))
        appointment = orchestrator.create_appointment(
            make_candidate(at(10), payment_status=PaymentStatus.COMPLETED)
        )
        assert appointment.deposit_amount == Decimal("15.00")
        assert appointment.deposit_paid

    def test_new_client_held_as_request(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10), is_new_client=True))
        assert appointment.status == AppointmentStatus.REQUESTED

    def test_snapshot_survives_catalog_change(self, orchestrator, catalog, appointments):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        catalog.add_service(make_service(price="99", duration=120))

        stored = appointments.get(appointment.id)
        assert stored.total_amount == Decimal("50")
        assert stored.pets[0].services[0].final_price == Decimal("50")
        assert stored.end_time == at(10, 45)

    def test_back_to_back_bookings(self, orchestrator):
        orchestrator.create_appointment(make_candidate(at(10)))
        second = orchestrator.create_appointment(make_candidate(at(10, 45)))
        assert second.start_time == at(10, 45)

    def test_fractional_price_rounded_on_record(self, orchestrator, catalog):
        catalog.add_service(make_service(price="33.33", modifiers=[
            make_modifier("mod-coat", adjustment="15", is_percentage=True),
        ]))
        catalog.set_policies(BookingPolicies(
            organization_id=ORG, deposit_required=True, deposit_minimum=Decimal("50"),
        ))
        appointment = orchestrator.create_appointment(
            make_candidate(at(10), services=[("svc-bath", ["mod-coat"])])
        )
        assert appointment.total_amount == Decimal("38.33")
        assert appointment.deposit_amount == Decimal("38.33")


class TestCreateConflicts:
    """Commits that lose to an existing or concurrent booking."""

    def test_overlap_rejected_and_nothing_written(self, orchestrator, appointments):
        orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(SlotConflictError, match="just booked"):
            orchestrator.create_appointment(make_candidate(at(10, 30)))
        assert appointments.count() == 1

    def test_groomer_off_shift_is_a_conflict(self, orchestrator, catalog):
        catalog.add_groomer(make_groomer(
            "grm-late",
            availability=GroomerAvailability(
                weekly_schedule={0: DaySchedule(start_time=time(12, 0), end_time=time(18, 0))},
            ),
        ))
        with pytest.raises(SlotConflictError):
            orchestrator.create_appointment(make_candidate(at(9), groomer_id="grm-late"))

    def test_cancelled_appointment_frees_slot(self, orchestrator):
        first = orchestrator.create_appointment(make_candidate(at(10)))
        orchestrator.update_appointment_status(first.id, AppointmentStatus.CANCELLED)
        second = orchestrator.create_appointment(make_candidate(at(10)))
        assert second.id != first.id

    def test_concurrent_commits_single_winner(self, orchestrator, appointments):
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            try:
                orchestrator.create_appointment(make_candidate(at(10)))
                outcome = "ok"
            except SlotConflictError:
                outcome = "conflict"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("ok") == 1
        assert results.count("conflict") == workers - 1
        assert appointments.count() == 1


class TestGroomerResolution:
    """Pinning a concrete groomer when the client has no preference."""

    def test_pool_pins_first_free_groomer(self, orchestrator, catalog, appointments):
        catalog.add_groomer(make_groomer("grm-b"))
        insert(appointments, make_appointment("grm-a", at(10), at(11)))

        appointment = orchestrator.create_appointment(make_candidate(at(10), groomer_id=None))
        assert appointment.groomer_id == "grm-b"

    def test_pool_exhausted(self, orchestrator, appointments):
        insert(appointments, make_appointment("grm-a", at(10), at(11)))
        with pytest.raises(SlotConflictError):
            orchestrator.create_appointment(make_candidate(at(10), groomer_id=None))
        assert appointments.count() == 1

    def test_pool_respects_capabilities(self, orchestrator, catalog):
        catalog.add_service(make_service(
            "svc-teeth", duration=30, price="25", category=ServiceCategory.SPECIALTY,
        ))
        catalog.add_groomer(make_groomer("grm-teeth", ["Teeth Cleaning"]))
        appointment = orchestrator.create_appointment(
            make_candidate(at(10), groomer_id=None, services=[("svc-teeth", [])])
        )
        assert appointment.groomer_id == "grm-teeth"

    def test_no_capable_groomer(self, orchestrator, catalog):
        catalog.add_service(make_service(
            "svc-teeth", duration=30, price="25", category=ServiceCategory.SPECIALTY,
        ))
        with pytest.raises(ValidationError, match="No active groomer"):
            orchestrator.create_appointment(
                make_candidate(at(10), groomer_id=None, services=[("svc-teeth", [])])
            )

    def test_inactive_requested_groomer(self, orchestrator, catalog):
        catalog.set_groomer_active("grm-a", False)
        with pytest.raises(ValidationError, match="not bookable"):
            orchestrator.create_appointment(make_candidate(at(10)))


class TestCreateValidation:
    def test_deactivated_service_rejected_at_commit(self, orchestrator, catalog, appointments):
        catalog.set_service_active("svc-bath", False)
        with pytest.raises(UnknownServiceError):
            orchestrator.create_appointment(make_candidate(at(10)))
        assert appointments.count() == 0

    def test_unknown_modifier(self, orchestrator):
        with pytest.raises(UnknownModifierError):
            orchestrator.create_appointment(
                make_candidate(at(10), services=[("svc-bath", ["mod-nope"])])
            )

    def test_no_pets(self, orchestrator):
        with pytest.raises(ValidationError, match="At least one pet"):
            orchestrator.create_appointment(make_candidate(at(10), pet_ids=()))

    def test_pet_without_services(self, orchestrator):
        with pytest.raises(ValidationError, match="without any selected service"):
            orchestrator.create_appointment(make_candidate(at(10), services=[]))

    def test_too_many_pets(self, orchestrator):
        with pytest.raises(ValidationError, match="Maximum 3 pets"):
            orchestrator.create_appointment(
                make_candidate(at(10), pet_ids=("p1", "p2", "p3", "p4"))
            )

    def test_naive_start_rejected(self, orchestrator):
        with pytest.raises(ValidationError, match="timezone-aware"):
            orchestrator.create_appointment(make_candidate(datetime(2026, 3, 2, 10, 0)))

    @pytest.mark.parametrize("start", [at(7, 30), at(17, 30), at(19)])
    def test_outside_business_hours(self, orchestrator, appointments, start):
        with pytest.raises(ValidationError, match="outside business hours"):
            orchestrator.create_appointment(make_candidate(start))
        assert appointments.count() == 0

    def test_closed_day(self, orchestrator, catalog):
        catalog.set_business_hours(BusinessHours(organization_id=ORG, closed_weekdays=[0]))
        with pytest.raises(ValidationError, match="outside business hours"):
            orchestrator.create_appointment(make_candidate(at(10)))

    def test_too_soon(self, orchestrator, catalog):
        catalog.set_policies(BookingPolicies(organization_id=ORG, min_advance_booking_hours=48))
        with pytest.raises(ValidationError, match="in advance"):
            orchestrator.create_appointment(make_candidate(at(10)))

    def test_duration_over_maximum(self, catalog, appointments):
        orchestrator = BookingOrchestrator(
            catalog, appointments, clock=lambda: FIXED_NOW, max_appointment_minutes=60,
        )
        with pytest.raises(ValidationError, match="exceeds the maximum"):
            orchestrator.create_appointment(make_candidate(at(10), pet_ids=("p1", "p2")))


class TestNotifications:
    """Notifications and logging after a committed write."""

    def test_booking_and_status_notifications(self, catalog, appointments):
        notifier = RecordingNotifier()
        orchestrator = BookingOrchestrator(
            catalog, appointments, notifier=notifier, clock=lambda: FIXED_NOW,
        )
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        orchestrator.update_appointment_status(appointment.id, "checked_in")

        assert notifier.booked == [appointment.id]
        assert notifier.changed == [
            (appointment.id, AppointmentStatus.CONFIRMED, AppointmentStatus.CHECKED_IN)
        ]

    def test_failing_notifier_does_not_undo_booking(self, catalog, appointments):
        orchestrator = BookingOrchestrator(
            catalog, appointments, notifier=BrokenNotifier(), clock=lambda: FIXED_NOW,
        )
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        assert appointments.get(appointment.id) is not None

        updated = orchestrator.update_appointment_status(appointment.id, "cancelled")
        assert updated.status == AppointmentStatus.CANCELLED

    def test_commit_logged_with_request_id(self, orchestrator, caplog):
        caplog.set_level(logging.INFO, logger="salon_scheduler.engine.orchestrator")
        orchestrator.create_appointment(make_candidate(at(10)))
        committed = [r for r in caplog.records if "committed" in r.getMessage()]
        assert committed
        assert committed[0].request_id.startswith("BOOK-")


class TestStatusUpdates:
    """Walk an appointment through its lifecycle, including fees."""

    def test_forward_transition(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        updated = orchestrator.update_appointment_status(
            appointment.id, AppointmentStatus.CHECKED_IN, notes="Arrived early"
        )
        assert updated.status == AppointmentStatus.CHECKED_IN
        assert updated.status_notes == "Arrived early"

    def test_terminal_status_is_final(self, orchestrator, appointments):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        for status in ("checked_in", "in_progress", "completed"):
            orchestrator.update_appointment_status(appointment.id, status)

        with pytest.raises(InvalidTransitionError):
            orchestrator.update_appointment_status(appointment.id, "cancelled")
        assert appointments.get(appointment.id).status == AppointmentStatus.COMPLETED

    def test_skipping_ahead_rejected(self, orchestrator, appointments):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(InvalidTransitionError):
            orchestrator.update_appointment_status(appointment.id, "completed")
        assert appointments.get(appointment.id).status == AppointmentStatus.CONFIRMED

    def test_unknown_status_string(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(InvalidTransitionError, match="Unknown appointment status"):
            orchestrator.update_appointment_status(appointment.id, "vanished")

    def test_missing_appointment(self, orchestrator):
        with pytest.raises(AppointmentNotFoundError):
            orchestrator.update_appointment_status("APT-NOPE", "confirmed")

    def test_cancel_outside_window_is_free(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        cancelled = orchestrator.update_appointment_status(appointment.id, "cancelled")
        assert cancelled.cancellation_fee == Decimal("0")

    def test_late_cancel_fee_excludes_tip(self, orchestrator, catalog):
        catalog.set_policies(BookingPolicies(organization_id=ORG, cancellation_window_hours=48))
        appointment = orchestrator.create_appointment(
            make_candidate(at(10), tip_amount=Decimal("10"))
        )
        cancelled = orchestrator.update_appointment_status(appointment.id, "cancelled")
        assert cancelled.cancellation_fee == Decimal("25.00")

    def test_cannot_cancel_past_appointment(self, catalog, appointments, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        later = BookingOrchestrator(catalog, appointments, clock=lambda: at(11))
        with pytest.raises(ValidationError, match="past appointments"):
            later.update_appointment_status(appointment.id, "cancelled")
        assert appointments.get(appointment.id).status == AppointmentStatus.CONFIRMED

    def test_no_show_fee(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        updated = orchestrator.update_appointment_status(appointment.id, "no_show")
        assert updated.no_show_fee == Decimal("50.00")

    def test_no_show_from_requested(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10), is_new_client=True))
        updated = orchestrator.update_appointment_status(appointment.id, "no_show")
        assert updated.status == AppointmentStatus.NO_SHOW


class TestReschedule:
    """Move an appointment in time or to another groomer."""

    def test_moves_and_keeps_duration(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        moved = orchestrator.reschedule_appointment(appointment.id, at(14))
        assert moved.start_time == at(14)
        assert moved.end_time == at(14, 45)
        assert moved.groomer_id == "grm-a"

    def test_small_shift_does_not_conflict_with_itself(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        moved = orchestrator.reschedule_appointment(appointment.id, at(10, 15))
        assert moved.start_time == at(10, 15)

    def test_conflict_leaves_original(self, orchestrator, appointments):
        first = orchestrator.create_appointment(make_candidate(at(10)))
        orchestrator.create_appointment(make_candidate(at(14)))
        with pytest.raises(SlotConflictError):
            orchestrator.reschedule_appointment(first.id, at(14, 30))
        assert appointments.get(first.id).start_time == at(10)

    def test_reassign_groomer(self, orchestrator, catalog):
        catalog.add_groomer(make_groomer("grm-b"))
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        moved = orchestrator.reschedule_appointment(appointment.id, at(10), groomer_id="grm-b")
        assert moved.groomer_id == "grm-b"

    def test_reassign_requires_feature(self, catalog, appointments):
        catalog.add_groomer(make_groomer("grm-b"))
        orchestrator = BookingOrchestrator(
            catalog, appointments, feature_gate=StaticFeatureGate(enabled=[]),
            clock=lambda: FIXED_NOW,
        )
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(FeatureNotAvailableError):
            orchestrator.reschedule_appointment(appointment.id, at(11), groomer_id="grm-b")
        moved = orchestrator.reschedule_appointment(appointment.id, at(11), groomer_id="grm-a")
        assert moved.start_time == at(11)

    def test_terminal_appointment_cannot_move(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        orchestrator.update_appointment_status(appointment.id, "cancelled")
        with pytest.raises(InvalidTransitionError):
            orchestrator.reschedule_appointment(appointment.id, at(14))

    def test_naive_start_rejected(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(ValidationError):
            orchestrator.reschedule_appointment(appointment.id, datetime(2026, 3, 2, 14, 0))

    def test_outside_business_hours(self, orchestrator, appointments):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(ValidationError, match="outside business hours"):
            orchestrator.reschedule_appointment(appointment.id, at(17, 30))
        assert appointments.get(appointment.id).start_time == at(10)

    def test_missing_appointment(self, orchestrator):
        with pytest.raises(AppointmentNotFoundError):
            orchestrator.reschedule_appointment("APT-NOPE", at(14))

    def test_cannot_move_into_the_past(self, orchestrator):
        appointment = orchestrator.create_appointment(make_candidate(at(10)))
        with pytest.raises(ValidationError):
            orchestrator.reschedule_appointment(appointment.id, FIXED_NOW - timedelta(hours=1))
