"""
Specialty-to-category capability matching.

A groomer's specialty tags decide which service categories they may be
matched to when a booking names no specific groomer. The table is
per-organization data: the default below is only what a new
organization starts with.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional

from salon_scheduler.config import settings
from salon_scheduler.errors import ValidationError
from salon_scheduler.schemas.catalog_schema import Groomer, ServiceCategory

logger = logging.getLogger(__name__)

_C = ServiceCategory

DEFAULT_SPECIALTY_CATEGORIES: dict[str, frozenset[ServiceCategory]] = {
    "large dogs": frozenset({_C.BATH, _C.HAIRCUT, _C.NAIL, _C.PACKAGE}),
    "small dogs": frozenset({_C.BATH, _C.HAIRCUT, _C.NAIL, _C.PACKAGE}),
    "cats": frozenset({_C.BATH, _C.NAIL}),
    "puppy grooming": frozenset({_C.BATH, _C.HAIRCUT, _C.NAIL}),
    "senior pets": frozenset({_C.BATH, _C.NAIL}),
    "dematting": frozenset({_C.BATH, _C.SPECIALTY}),
    "poodle cuts": frozenset({_C.HAIRCUT, _C.SPECIALTY}),
    "breed-specific styles": frozenset({_C.HAIRCUT, _C.SPECIALTY, _C.PACKAGE}),
    "show cuts": frozenset({_C.HAIRCUT, _C.SPECIALTY, _C.PACKAGE}),
    "nail trimming": frozenset({_C.NAIL}),
    "teeth cleaning": frozenset({_C.SPECIALTY}),
    "de-shedding": frozenset({_C.BATH, _C.SPECIALTY}),
    "hand stripping": frozenset({_C.HAIRCUT, _C.SPECIALTY}),
    "creative grooming": frozenset({_C.HAIRCUT, _C.SPECIALTY}),
    "all breeds": frozenset(ServiceCategory),
}


def parse_categories(values: Optional[Iterable[str]]) -> frozenset[ServiceCategory]:
    """Coerce category names, rejecting unknown ones."""
    if values is None:
        return frozenset()
    parsed = set()
    for value in values:
        try:
            parsed.add(ServiceCategory(value))
        except ValueError:
            raise ValidationError(f"Unknown service category: {value!r}") from None
    return frozenset(parsed)


@dataclass(frozen=True)
class CapabilityMap:
    """Maps specialty tags (case-insensitive) to the categories they unlock."""

    specialty_categories: Mapping[str, frozenset[ServiceCategory]] = field(
        default_factory=lambda: dict(DEFAULT_SPECIALTY_CATEGORIES)
    )
    baseline_categories: frozenset[ServiceCategory] = field(
        default_factory=lambda: parse_categories(settings.capability.baseline_categories)
    )

    def __post_init__(self) -> None:
        normalized = {
            key.strip().lower(): parse_categories(value)
            for key, value in self.specialty_categories.items()
        }
        object.__setattr__(self, "specialty_categories", normalized)
        object.__setattr__(self, "baseline_categories", parse_categories(self.baseline_categories))

    def categories_for(self, specialties: Iterable[str]) -> frozenset[ServiceCategory]:
        """Categories a groomer with these specialties may perform.

        A groomer whose tags match nothing in the table falls back to the
        baseline set.
        """
        categories: set[ServiceCategory] = set()
        for specialty in specialties:
            categories |= self.specialty_categories.get(specialty.strip().lower(), frozenset())
        return frozenset(categories) if categories else self.baseline_categories

    def can_perform(self, groomer: Groomer, required: Iterable[ServiceCategory]) -> bool:
        return set(required) <= self.categories_for(groomer.specialties)

    def eligible(
        self, groomers: Iterable[Groomer], required: Iterable[ServiceCategory]
    ) -> list[Groomer]:
        """Active groomers able to perform every required category, in input order."""
        required = frozenset(required)
        return [g for g in groomers if g.is_active and self.can_perform(g, required)]
