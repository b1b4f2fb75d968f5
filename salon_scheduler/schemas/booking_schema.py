"""Booking request, appointment record and time slot models."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that no longer hold a groomer's time.
NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ServiceSelection(BaseModel):
    """A service picked for one pet, with the chosen modifier ids."""
    service_id: str
    modifier_ids: list[str] = Field(default_factory=list)


class PetBooking(BaseModel):
    """Services selected for a single pet."""
    pet_id: str
    services: list[ServiceSelection] = Field(default_factory=list)


class BookingCandidate(BaseModel):
    """Validated booking request data. Totals are never accepted from the caller."""
    organization_id: str
    client_id: str
    is_new_client: bool = False
    groomer_id: Optional[str] = None
    start_time: datetime
    pets: list[PetBooking] = Field(default_factory=list)
    tip_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    client_notes: Optional[str] = None


class BookedService(BaseModel):
    """Service line snapshotted at commit time; never recomputed afterwards."""
    service_id: str
    modifier_ids: list[str] = Field(default_factory=list)
    final_duration: int
    final_price: Decimal


class AppointmentPet(BaseModel):
    pet_id: str
    services: list[BookedService] = Field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(BaseModel):
    """Persisted appointment record."""
    id: str
    organization_id: str
    client_id: str
    groomer_id: str
    status: AppointmentStatus
    start_time: datetime
    end_time: datetime
    pets: list[AppointmentPet] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    deposit_amount: Decimal = Decimal("0")
    deposit_paid: bool = False
    tip_amount: Decimal = Decimal("0")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    cancellation_fee: Decimal = Decimal("0")
    no_show_fee: Decimal = Decimal("0")
    status_notes: Optional[str] = None
    client_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def blocks_time(self) -> bool:
        """True while the appointment still occupies its groomer's time."""
        return self.status not in NON_BLOCKING_STATUSES


class TimeSlot(BaseModel):
    """Candidate bookable window. Derived on demand, never stored."""
    date: date
    start_time: datetime
    end_time: datetime
    available: bool
    groomer_id: Optional[str] = None
