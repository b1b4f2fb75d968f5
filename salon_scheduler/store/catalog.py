"""
In-memory catalog: services, groomers, policies, business hours and
capability maps per organization.

Reads hand out copies, so callers always work on a point-in-time snapshot.
In production this would sit on the organization's settings tables.
"""

import logging
import threading
from typing import Optional

from salon_scheduler.capability import CapabilityMap
from salon_scheduler.config import settings
from salon_scheduler.schemas.catalog_schema import BusinessHours, Groomer, Service
from salon_scheduler.schemas.policy_schema import BookingPolicies

logger = logging.getLogger(__name__)


class CatalogStore:
    """Thread-safe read/write store for per-organization catalog data."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._services: dict[str, Service] = {}
        self._groomers: dict[str, Groomer] = {}
        self._policies: dict[str, BookingPolicies] = {}
        self._hours: dict[str, BusinessHours] = {}
        self._capabilities: dict[str, CapabilityMap] = {}

    # --- Services ---

    def add_service(self, service: Service) -> None:
        with self._lock:
            self._services[service.id] = service.model_copy(deep=True)
        logger.debug("Service stored: %s (%s)", service.id, service.organization_id)

    def get_service(self, service_id: str) -> Optional[Service]:
        with self._lock:
            service = self._services.get(service_id)
            return service.model_copy(deep=True) if service else None

    def set_service_active(self, service_id: str, is_active: bool) -> None:
        """Soft-enable or soft-disable a service."""
        with self._lock:
            service = self._services[service_id]
            self._services[service_id] = service.model_copy(update={"is_active": is_active})
        logger.info("Service %s active=%s", service_id, is_active)

    def active_services(self, organization_id: str) -> dict[str, Service]:
        """The organization's active catalog keyed by service id."""
        with self._lock:
            return {
                sid: s.model_copy(deep=True)
                for sid, s in self._services.items()
                if s.organization_id == organization_id and s.is_active
            }

    # --- Groomers ---

    def add_groomer(self, groomer: Groomer) -> None:
        with self._lock:
            self._groomers[groomer.id] = groomer.model_copy(deep=True)

    def get_groomer(self, organization_id: str, groomer_id: str) -> Optional[Groomer]:
        with self._lock:
            groomer = self._groomers.get(groomer_id)
            if groomer is None or groomer.organization_id != organization_id:
                return None
            return groomer.model_copy(deep=True)

    def set_groomer_active(self, groomer_id: str, is_active: bool) -> None:
        with self._lock:
            groomer = self._groomers[groomer_id]
            self._groomers[groomer_id] = groomer.model_copy(update={"is_active": is_active})
        logger.info("Groomer %s active=%s", groomer_id, is_active)

    def active_groomers(self, organization_id: str) -> list[Groomer]:
        """Active groomers in the order they were added."""
        with self._lock:
            return [
                g.model_copy(deep=True)
                for g in self._groomers.values()
                if g.organization_id == organization_id and g.is_active
            ]

    # --- Organization settings ---

    def set_policies(self, policies: BookingPolicies) -> None:
        with self._lock:
            self._policies[policies.organization_id] = policies.model_copy()

    def get_policies(self, organization_id: str) -> BookingPolicies:
        with self._lock:
            policies = self._policies.get(organization_id)
        return policies.model_copy() if policies else BookingPolicies(organization_id=organization_id)

    def set_business_hours(self, hours: BusinessHours) -> None:
        with self._lock:
            self._hours[hours.organization_id] = hours.model_copy()

    def get_business_hours(self, organization_id: str) -> BusinessHours:
        """Configured hours, or the defaults from SchedulingConfig."""
        with self._lock:
            hours = self._hours.get(organization_id)
        if hours is not None:
            return hours.model_copy()
        return BusinessHours(
            organization_id=organization_id,
            open_time=settings.scheduling.default_open_time,
            close_time=settings.scheduling.default_close_time,
            timezone=settings.scheduling.default_timezone,
        )

    def set_capability_map(self, organization_id: str, capability_map: CapabilityMap) -> None:
        with self._lock:
            self._capabilities[organization_id] = capability_map

    def get_capability_map(self, organization_id: str) -> CapabilityMap:
        with self._lock:
            capability_map = self._capabilities.get(organization_id)
        return capability_map if capability_map is not None else CapabilityMap()
