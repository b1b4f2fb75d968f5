"""
In-memory appointment store with atomic conditional writes.

The overlap check and the insert happen under one lock, which is the
storage-level equivalent of "insert only if no overlapping row exists for
this groomer". Two commits racing for the same groomer and interval
therefore cannot both succeed.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Optional

from salon_scheduler.errors import AppointmentNotFoundError
from salon_scheduler.schemas.booking_schema import Appointment
from salon_scheduler.utils import overlaps

logger = logging.getLogger(__name__)

# (groomer_id, that groomer's time-blocking appointments) -> True when the slot conflicts
ConflictCheck = Callable[[str, list[Appointment]], bool]


class AppointmentStore:
    """Thread-safe appointment set, keyed by appointment id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._appointments: dict[str, Appointment] = {}

    def _blocking_for(self, groomer_id: str, exclude_id: Optional[str] = None) -> list[Appointment]:
        return [
            a for a in self._appointments.values()
            if a.groomer_id == groomer_id and a.blocks_time and a.id != exclude_id
        ]

    def get(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            return appointment.model_copy(deep=True) if appointment else None

    def list_between(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        groomer_ids: Optional[Iterable[str]] = None,
    ) -> list[Appointment]:
        """Snapshot of appointments overlapping [start, end), any status, ordered by start."""
        wanted = set(groomer_ids) if groomer_ids is not None else None
        with self._lock:
            found = [
                a.model_copy(deep=True)
                for a in self._appointments.values()
                if a.organization_id == organization_id
                and (wanted is None or a.groomer_id in wanted)
                and overlaps(a.start_time, a.end_time, start, end)
            ]
        return sorted(found, key=lambda a: (a.start_time, a.id))

    def insert_for_first_free(
        self,
        build: Callable[[str], Appointment],
        groomer_ids: Sequence[str],
        conflicts: ConflictCheck,
    ) -> Optional[Appointment]:
        """
        Atomically insert an appointment for the first conflict-free groomer.

        Args:
            build: Creates the record for a resolved groomer id.
            groomer_ids: Candidates in preference order.
            conflicts: Overlap check run against each candidate's current appointments.

        Returns:
            The stored appointment, or None if every candidate conflicts
            (nothing is written in that case).
        """
        with self._lock:
            for groomer_id in groomer_ids:
                if conflicts(groomer_id, self._blocking_for(groomer_id)):
                    continue
                appointment = build(groomer_id)
                self._appointments[appointment.id] = appointment.model_copy(deep=True)
                logger.debug("Inserted %s for groomer %s", appointment.id, groomer_id)
                return appointment
        return None

    def update(
        self,
        appointment_id: str,
        mutate: Callable[[Appointment], Appointment],
        conflicts: Optional[ConflictCheck] = None,
    ) -> Optional[Appointment]:
        """
        Atomically replace an appointment with ``mutate(current)``.

        When ``conflicts`` is given, the new version is checked against the
        groomer's other appointments first and None is returned on conflict.
        If ``mutate`` raises, nothing is written.

        Raises:
            AppointmentNotFoundError: If the id is unknown.
        """
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                raise AppointmentNotFoundError(appointment_id)
            updated = mutate(current.model_copy(deep=True))
            if conflicts is not None and conflicts(
                updated.groomer_id, self._blocking_for(updated.groomer_id, exclude_id=appointment_id)
            ):
                return None
            self._appointments[appointment_id] = updated.model_copy(deep=True)
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._appointments)

    def reset(self) -> None:
        """Clear all appointments. Used by test fixtures for isolation."""
        with self._lock:
            self._appointments.clear()
