"""
Demo organization used by the console entry point.

In production the catalog is edited by staff; this seed mirrors a small
two-groomer salon so the engines can be explored without a database.
"""

import logging
from datetime import time
from decimal import Decimal

from salon_scheduler.schemas.catalog_schema import (
    BusinessHours,
    DaySchedule,
    Groomer,
    GroomerAvailability,
    Modifier,
    ModifierType,
    Service,
    ServiceCategory,
)
from salon_scheduler.schemas.policy_schema import BookingPolicies, ConfirmationMode
from salon_scheduler.store.catalog import CatalogStore

logger = logging.getLogger(__name__)

DEMO_ORG = "org-demo"

DEMO_SERVICES: list[Service] = [
    Service(
        id="svc-bath",
        organization_id=DEMO_ORG,
        name="Bath & Brush",
        base_duration_minutes=45,
        base_price=Decimal("50"),
        category=ServiceCategory.BATH,
        modifiers=[
            Modifier(id="mod-large", service_id="svc-bath", name="Large dog",
                     type=ModifierType.WEIGHT, duration_minutes=15,
                     price_adjustment=Decimal("10")),
            Modifier(id="mod-double-coat", service_id="svc-bath", name="Double coat",
                     type=ModifierType.COAT, duration_minutes=0,
                     price_adjustment=Decimal("20"), is_percentage=True),
            Modifier(id="mod-deshed", service_id="svc-bath", name="De-shedding treatment",
                     type=ModifierType.ADDON, duration_minutes=15,
                     price_adjustment=Decimal("15")),
        ],
    ),
    Service(
        id="svc-groom",
        organization_id=DEMO_ORG,
        name="Full Groom",
        base_duration_minutes=90,
        base_price=Decimal("85"),
        category=ServiceCategory.HAIRCUT,
        modifiers=[
            Modifier(id="mod-poodle", service_id="svc-groom", name="Poodle / doodle",
                     type=ModifierType.BREED, duration_minutes=30,
                     price_adjustment=Decimal("15"), is_percentage=True),
        ],
    ),
    Service(
        id="svc-nails",
        organization_id=DEMO_ORG,
        name="Nail Trim",
        base_duration_minutes=15,
        base_price=Decimal("18"),
        category=ServiceCategory.NAIL,
    ),
    Service(
        id="svc-teeth",
        organization_id=DEMO_ORG,
        name="Teeth Cleaning",
        base_duration_minutes=30,
        base_price=Decimal("25"),
        category=ServiceCategory.SPECIALTY,
    ),
]

_WEEKDAY_HOURS = DaySchedule(
    start_time=time(9, 0), end_time=time(17, 0),
    break_start=time(12, 30), break_end=time(13, 0),
)

DEMO_GROOMERS: list[Groomer] = [
    Groomer(
        id="grm-sarah",
        organization_id=DEMO_ORG,
        name="Sarah Mitchell",
        specialties=["Large Dogs", "Dematting", "Show Cuts"],
    ),
    Groomer(
        id="grm-mike",
        organization_id=DEMO_ORG,
        name="Mike Chen",
        specialties=["Cats", "Nail Trimming"],
        availability=GroomerAvailability(
            weekly_schedule={day: _WEEKDAY_HOURS for day in range(5)},
            buffer_minutes=15,
        ),
    ),
]


def seed_demo(catalog: CatalogStore) -> None:
    """Load the demo organization into ``catalog``."""
    for service in DEMO_SERVICES:
        catalog.add_service(service)
    for groomer in DEMO_GROOMERS:
        catalog.add_groomer(groomer)
    catalog.set_business_hours(BusinessHours(
        organization_id=DEMO_ORG,
        open_time=time(8, 0),
        close_time=time(18, 0),
        timezone="America/New_York",
        closed_weekdays=[6],
    ))
    catalog.set_policies(BookingPolicies(
        organization_id=DEMO_ORG,
        deposit_required=True,
        deposit_percentage=Decimal("25"),
        deposit_minimum=Decimal("15"),
        new_client_mode=ConfirmationMode.REQUEST_ONLY,
        existing_client_mode=ConfirmationMode.AUTO_CONFIRM,
        min_advance_booking_hours=2,
    ))
    logger.info(
        "Seeded demo organization %s: %d services, %d groomers",
        DEMO_ORG, len(DEMO_SERVICES), len(DEMO_GROOMERS),
    )
