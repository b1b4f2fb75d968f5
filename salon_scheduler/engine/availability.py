"""
Availability engine: bookable time slots for a day or a range of days.

Candidate starts run from business-hours open in fixed steps; a candidate
is emitted only if it ends by close. Each candidate is then checked
against the target groomer, or against the pool of capability-matching
active groomers, with ``groomer_is_free``. The booking orchestrator
re-runs that check inside the store's conditional insert.

Slot generation is a pure read over store snapshots and takes no locks.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from salon_scheduler.config import settings
from salon_scheduler.capability import parse_categories
from salon_scheduler.schemas.booking_schema import Appointment, TimeSlot
from salon_scheduler.schemas.catalog_schema import BusinessHours, Groomer
from salon_scheduler.store.appointments import AppointmentStore
from salon_scheduler.store.catalog import CatalogStore
from salon_scheduler.utils import overlaps

logger = logging.getLogger(__name__)

Window = tuple[datetime, datetime]


def _local(day: date, wall: time, hours: BusinessHours) -> datetime:
    """Wall-clock time on ``day`` in the organization's zone, as a UTC instant."""
    return datetime.combine(day, wall, tzinfo=hours.tzinfo).astimezone(timezone.utc)


def business_window(day: date, hours: BusinessHours) -> Optional[Window]:
    """Open/close instants for ``day``, or None when the business is closed."""
    if day.weekday() in hours.closed_weekdays:
        return None
    return _local(day, hours.open_time, hours), _local(day, hours.close_time, hours)


def working_window(groomer: Groomer, day: date, hours: BusinessHours) -> Optional[Window]:
    """
    The part of the business day a groomer works, or None if they are off.

    Groomers without a weekly schedule work full business hours. A
    schedule never extends past business hours.
    """
    window = business_window(day, hours)
    if window is None or not groomer.is_active:
        return None
    if any(t.covers(day) for t in groomer.time_off):
        return None
    if groomer.availability is None:
        return window

    schedule = groomer.availability.weekly_schedule.get(day.weekday())
    if schedule is None or not schedule.is_working_day:
        return None
    start = max(window[0], _local(day, schedule.start_time, hours))
    end = min(window[1], _local(day, schedule.end_time, hours))
    if start >= end:
        return None
    return start, end


def within_business_hours(start: datetime, end: datetime, hours: BusinessHours) -> bool:
    """True when [start, end) lies inside the business window of the day it starts on."""
    window = business_window(start.astimezone(hours.tzinfo).date(), hours)
    return window is not None and window[0] <= start and end <= window[1]


def break_window(groomer: Groomer, day: date, hours: BusinessHours) -> Optional[Window]:
    if groomer.availability is None:
        return None
    schedule = groomer.availability.weekly_schedule.get(day.weekday())
    if schedule is None or schedule.break_start is None or schedule.break_end is None:
        return None
    return _local(day, schedule.break_start, hours), _local(day, schedule.break_end, hours)


def groomer_is_free(
    groomer: Groomer,
    start: datetime,
    end: datetime,
    appointments: Iterable[Appointment],
    hours: BusinessHours,
) -> bool:
    """
    True when ``groomer`` can take [start, end).

    The interval must sit inside the groomer's working window, miss their
    break, and not overlap (half-open, widened by the groomer's buffer) any
    of their appointments that still block time.
    """
    day = start.astimezone(hours.tzinfo).date()
    window = working_window(groomer, day, hours)
    if window is None or start < window[0] or end > window[1]:
        return False

    pause = break_window(groomer, day, hours)
    if pause is not None and overlaps(start, end, *pause):
        return False

    buffer = timedelta(
        minutes=groomer.availability.buffer_minutes if groomer.availability else 0
    )
    for appointment in appointments:
        if appointment.groomer_id != groomer.id or not appointment.blocks_time:
            continue
        if overlaps(start, end, appointment.start_time - buffer, appointment.end_time + buffer):
            return False
    return True


def first_free_groomer(
    groomers: Sequence[Groomer],
    start: datetime,
    end: datetime,
    appointments: Sequence[Appointment],
    hours: BusinessHours,
) -> Optional[Groomer]:
    for groomer in groomers:
        if groomer_is_free(groomer, start, end, appointments, hours):
            return groomer
    return None


class AvailabilityEngine:
    """Generates TimeSlots from the catalog and appointment stores."""

    def __init__(
        self,
        catalog: CatalogStore,
        appointments: AppointmentStore,
        granularity_minutes: Optional[int] = None,
    ) -> None:
        if granularity_minutes is None:
            granularity_minutes = settings.scheduling.slot_granularity_minutes
        elif granularity_minutes < 1:
            raise ValueError(f"granularity_minutes must be >= 1, got {granularity_minutes}")
        self._catalog = catalog
        self._appointments = appointments
        self._step = timedelta(minutes=granularity_minutes)

    def candidate_groomers(
        self,
        organization_id: str,
        resource_id: Optional[str] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> list[Groomer]:
        """
        The conflict-check population: the requested groomer if active,
        otherwise every active groomer able to perform ``categories``.

        Raises:
            ValidationError: If a category name is unknown.
        """
        required = parse_categories(categories)
        if resource_id is not None:
            groomer = self._catalog.get_groomer(organization_id, resource_id)
            return [groomer] if groomer is not None and groomer.is_active else []
        capability_map = self._catalog.get_capability_map(organization_id)
        return capability_map.eligible(self._catalog.active_groomers(organization_id), required)

    def generate_slots(
        self,
        day: date,
        required_duration: int,
        organization_id: str,
        resource_id: Optional[str] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> list[TimeSlot]:
        """
        All candidate slots of ``required_duration`` minutes on ``day``.

        Every returned slot fits entirely inside business hours; ``available``
        tells whether the groomer (or at least one pool groomer) is free.
        An empty list is the normal "nothing available" signal: closed day,
        non-positive or over-long duration, unknown or off-duty groomer.
        """
        if required_duration <= 0:
            return []
        hours = self._catalog.get_business_hours(organization_id)
        window = business_window(day, hours)
        if window is None:
            return []
        open_at, close_at = window
        duration = timedelta(minutes=required_duration)
        if open_at + duration > close_at:
            return []

        groomers = self.candidate_groomers(organization_id, resource_id, categories)
        if resource_id is not None and (
            not groomers or working_window(groomers[0], day, hours) is None
        ):
            return []

        margin = timedelta(minutes=max(
            (g.availability.buffer_minutes for g in groomers if g.availability), default=0
        ))
        existing = self._appointments.list_between(
            organization_id, open_at - margin, close_at + margin, [g.id for g in groomers]
        )

        slots: list[TimeSlot] = []
        start = open_at
        while start + duration <= close_at:
            end = start + duration
            free = first_free_groomer(groomers, start, end, existing, hours)
            slots.append(TimeSlot(
                date=day,
                start_time=start.astimezone(hours.tzinfo),
                end_time=end.astimezone(hours.tzinfo),
                available=free is not None,
                groomer_id=free.id if free is not None else resource_id,
            ))
            start += self._step

        logger.debug(
            "Generated %d slots (%d available) for %s on %s, groomer=%s",
            len(slots), sum(s.available for s in slots), organization_id, day,
            resource_id or "any",
        )
        return slots

    def generate_slots_for_range(
        self,
        start_day: date,
        days: int,
        required_duration: int,
        organization_id: str,
        resource_id: Optional[str] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> dict[date, list[TimeSlot]]:
        """Per-day slots for ``days`` consecutive dates; no state carries across days."""
        categories = list(categories) if categories is not None else None
        return {
            day: self.generate_slots(day, required_duration, organization_id, resource_id, categories)
            for day in (start_day + timedelta(days=i) for i in range(days))
        }
