"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

import pytest

from salon_scheduler.engine.availability import AvailabilityEngine
from salon_scheduler.engine.orchestrator import BookingOrchestrator
from salon_scheduler.schemas.booking_schema import (
    Appointment,
    AppointmentStatus,
    BookingCandidate,
    PetBooking,
    ServiceSelection,
)
from salon_scheduler.schemas.catalog_schema import (
    BusinessHours,
    Groomer,
    Modifier,
    Service,
    ServiceCategory,
)
from salon_scheduler.schemas.policy_schema import BookingPolicies
from salon_scheduler.store.appointments import AppointmentStore
from salon_scheduler.store.catalog import CatalogStore

ORG = "org-test"
DAY = date(2026, 3, 2)  # Monday
FIXED_NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    """UTC instant on the test day."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def make_service(
    service_id: str = "svc-bath",
    duration: int = 45,
    price: str = "50",
    category: ServiceCategory = ServiceCategory.BATH,
    modifiers: Optional[list[Modifier]] = None,
    is_active: bool = True,
) -> Service:
    return Service(
        id=service_id,
        organization_id=ORG,
        name=service_id,
        base_duration_minutes=duration,
        base_price=Decimal(price),
        category=category,
        is_active=is_active,
        modifiers=modifiers or [],
    )


def make_modifier(
    modifier_id: str,
    service_id: str = "svc-bath",
    duration: int = 0,
    adjustment: str = "0",
    is_percentage: bool = False,
) -> Modifier:
    return Modifier(
        id=modifier_id,
        service_id=service_id,
        duration_minutes=duration,
        price_adjustment=Decimal(adjustment),
        is_percentage=is_percentage,
    )


def make_groomer(groomer_id: str, specialties: Optional[list[str]] = None, **kwargs) -> Groomer:
    return Groomer(
        id=groomer_id,
        organization_id=ORG,
        name=groomer_id,
        specialties=specialties or [],
        **kwargs,
    )


def make_appointment(
    groomer_id: str,
    start: datetime,
    end: datetime,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    appointment_id: str = "APT-EXISTING",
) -> Appointment:
    return Appointment(
        id=appointment_id,
        organization_id=ORG,
        client_id="client-x",
        groomer_id=groomer_id,
        status=status,
        start_time=start,
        end_time=end,
        total_amount=Decimal("50"),
    )


def make_candidate(
    start: datetime,
    groomer_id: Optional[str] = "grm-a",
    services: Optional[list[tuple[str, list[str]]]] = None,
    pet_ids: tuple[str, ...] = ("pet-1",),
    is_new_client: bool = False,
    **kwargs,
) -> BookingCandidate:
    """Candidate where every pet gets the same ``services`` selections."""
    selections = services if services is not None else [("svc-bath", [])]
    return BookingCandidate(
        organization_id=ORG,
        client_id="client-1",
        is_new_client=is_new_client,
        groomer_id=groomer_id,
        start_time=start,
        pets=[
            PetBooking(
                pet_id=pet_id,
                services=[ServiceSelection(service_id=s, modifier_ids=m) for s, m in selections],
            )
            for pet_id in pet_ids
        ],
        **kwargs,
    )


def insert(store: AppointmentStore, appointment: Appointment) -> Appointment:
    """Put an appointment in the store unconditionally."""
    result = store.insert_for_first_free(
        lambda _: appointment, [appointment.groomer_id], lambda *_: False
    )
    assert result is not None
    return result


@pytest.fixture
def catalog():
    store = CatalogStore()
    store.set_business_hours(BusinessHours(
        organization_id=ORG, open_time=time(8, 0), close_time=time(18, 0), timezone="UTC",
    ))
    store.set_policies(BookingPolicies(organization_id=ORG))
    store.add_service(make_service())
    store.add_groomer(make_groomer("grm-a"))
    return store


@pytest.fixture
def appointments():
    return AppointmentStore()


@pytest.fixture
def availability(catalog, appointments):
    return AvailabilityEngine(catalog, appointments, granularity_minutes=30)


@pytest.fixture
def orchestrator(catalog, appointments):
    return BookingOrchestrator(catalog, appointments, clock=lambda: FIXED_NOW)
