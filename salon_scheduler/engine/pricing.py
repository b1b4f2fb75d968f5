"""
Pricing engine: effective duration and price of services under modifiers.

Pure functions, no state and no I/O. Percentage modifiers are always a
percentage of the service's *base* price, so two +10% modifiers add
exactly 20% of base rather than a compounded 21%.

Usage:
    total = compute_service_total(service, ["mod-large", "mod-deshed"])
    appointment = compute_appointment_total(candidate.pets, active_services)
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from salon_scheduler.errors import UnknownModifierError, UnknownServiceError, ValidationError
from salon_scheduler.schemas.booking_schema import PetBooking
from salon_scheduler.schemas.catalog_schema import Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceTotal:
    """Effective duration (minutes) and price of one service selection."""

    service_id: str
    modifier_ids: tuple[str, ...]
    duration: int
    price: Decimal


@dataclass(frozen=True)
class PetTotal:
    pet_id: str
    services: tuple[ServiceTotal, ...]
    duration: int
    price: Decimal


@dataclass(frozen=True)
class AppointmentTotal:
    """Sum over every (service, modifiers) pair across every pet."""

    total_duration: int
    total_price: Decimal
    per_pet: tuple[PetTotal, ...] = field(default_factory=tuple)


def _unique(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def compute_service_total(service: Service, selected_modifier_ids: Iterable[str]) -> ServiceTotal:
    """
    Apply the selected modifiers to a service.

    Modifiers are treated as a set: order does not matter and a repeated
    id counts once.

    Raises:
        UnknownServiceError: If the service is inactive.
        UnknownModifierError: If a modifier id is not one of the service's modifiers.
    """
    if not service.is_active:
        raise UnknownServiceError(service.id)

    modifier_ids = _unique(selected_modifier_ids)
    duration = service.base_duration_minutes
    price = service.base_price

    for modifier_id in modifier_ids:
        modifier = service.get_modifier(modifier_id)
        if modifier is None:
            raise UnknownModifierError(modifier_id, service.id)
        duration += modifier.duration_minutes
        if modifier.is_percentage:
            price += service.base_price * modifier.price_adjustment / Decimal(100)
        else:
            price += modifier.price_adjustment

    return ServiceTotal(
        service_id=service.id,
        modifier_ids=modifier_ids,
        duration=duration,
        price=price,
    )


def _collapse_selections(pet: PetBooking) -> dict[str, tuple[str, ...]]:
    """Map service id to its modifier set, rejecting conflicting duplicates."""
    selections: dict[str, tuple[str, ...]] = {}
    for selection in pet.services:
        modifier_ids = _unique(selection.modifier_ids)
        previous = selections.get(selection.service_id)
        if previous is not None and set(previous) != set(modifier_ids):
            raise ValidationError(
                f"Service '{selection.service_id}' is selected twice for pet "
                f"'{pet.pet_id}' with different modifiers."
            )
        selections.setdefault(selection.service_id, modifier_ids)
    return selections


def compute_appointment_total(
    pet_bookings: Iterable[PetBooking], services: Mapping[str, Service]
) -> AppointmentTotal:
    """
    Total duration and price for a composite booking.

    Args:
        pet_bookings: Per-pet service selections.
        services: The organization's active catalog keyed by service id.

    Raises:
        UnknownServiceError: If a selected service is not in the active catalog.
        UnknownModifierError: If a modifier does not belong to its service.
        ValidationError: If one pet selects the same service with different modifiers.
    """
    per_pet: list[PetTotal] = []
    total_duration = 0
    total_price = Decimal("0")

    for pet in pet_bookings:
        lines: list[ServiceTotal] = []
        for service_id, modifier_ids in _collapse_selections(pet).items():
            service = services.get(service_id)
            if service is None:
                raise UnknownServiceError(service_id)
            lines.append(compute_service_total(service, modifier_ids))

        pet_duration = sum(line.duration for line in lines)
        pet_price = sum((line.price for line in lines), Decimal("0"))
        per_pet.append(PetTotal(pet.pet_id, tuple(lines), pet_duration, pet_price))
        total_duration += pet_duration
        total_price += pet_price

    logger.debug(
        "Priced %d pet(s): %d minutes, %s", len(per_pet), total_duration, total_price
    )
    return AppointmentTotal(total_duration, total_price, tuple(per_pet))
