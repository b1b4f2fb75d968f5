"""
Interfaces to systems outside the scheduling core.

In production the notifier would hand off to the email/SMS templates and
the feature gate would read the organization's subscription tier. The
defaults here log and use a static feature set.
"""

import logging
from collections.abc import Iterable
from typing import Optional, Protocol

from salon_scheduler.schemas.booking_schema import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

MULTI_STAFF_SCHEDULING = "multi_staff_scheduling"


class Notifier(Protocol):
    """Fire-and-forget notifications sent after a successful write."""

    def appointment_booked(self, appointment: Appointment) -> None: ...

    def status_changed(
        self, appointment: Appointment, previous: AppointmentStatus
    ) -> None: ...


class FeatureGate(Protocol):
    """Read-only subscription feature lookup."""

    def is_enabled(self, organization_id: str, feature: str) -> bool: ...


class LoggingNotifier:
    """Default notifier: records the event in the log and does nothing else."""

    def appointment_booked(self, appointment: Appointment) -> None:
        logger.info(
            "Notify: appointment %s booked for client %s (%s)",
            appointment.id, appointment.client_id, appointment.status.value,
        )

    def status_changed(self, appointment: Appointment, previous: AppointmentStatus) -> None:
        logger.info(
            "Notify: appointment %s %s -> %s",
            appointment.id, previous.value, appointment.status.value,
        )


class StaticFeatureGate:
    """Feature gate backed by a fixed set of enabled features for every organization."""

    def __init__(self, enabled: Optional[Iterable[str]] = None) -> None:
        self._enabled = frozenset(enabled if enabled is not None else [MULTI_STAFF_SCHEDULING])

    def is_enabled(self, organization_id: str, feature: str) -> bool:
        return feature in self._enabled
