"""Service catalog, groomer and business-hours models."""

from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, model_validator


class ServiceCategory(str, Enum):
    BATH = "bath"
    HAIRCUT = "haircut"
    NAIL = "nail"
    SPECIALTY = "specialty"
    PACKAGE = "package"


class ModifierType(str, Enum):
    WEIGHT = "weight"
    COAT = "coat"
    BREED = "breed"
    ADDON = "addon"


class Modifier(BaseModel):
    """An adjustment to a service's base duration and price."""

    id: str
    service_id: str
    name: str = ""
    type: ModifierType = ModifierType.ADDON
    duration_minutes: int = 0
    price_adjustment: Decimal = Decimal("0")
    is_percentage: bool = False


class Service(BaseModel):
    """A bookable service with its modifiers."""

    id: str
    organization_id: str
    name: str = ""
    base_duration_minutes: int = Field(gt=0)
    base_price: Decimal = Field(ge=0)
    category: ServiceCategory
    is_active: bool = True
    modifiers: list[Modifier] = Field(default_factory=list)

    def get_modifier(self, modifier_id: str) -> Optional[Modifier]:
        for modifier in self.modifiers:
            if modifier.id == modifier_id:
                return modifier
        return None


class DaySchedule(BaseModel):
    """A groomer's working hours for one weekday."""

    is_working_day: bool = True
    start_time: time
    end_time: time
    break_start: Optional[time] = None
    break_end: Optional[time] = None


class GroomerAvailability(BaseModel):
    """Weekly schedule keyed by weekday (0 = Monday) plus buffer between appointments."""

    weekly_schedule: dict[int, DaySchedule] = Field(default_factory=dict)
    buffer_minutes: int = Field(default=0, ge=0)


class TimeOffStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeOff(BaseModel):
    start_date: date
    end_date: date
    status: TimeOffStatus = TimeOffStatus.APPROVED
    reason: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.status == TimeOffStatus.APPROVED and self.start_date <= day <= self.end_date


class Groomer(BaseModel):
    """A schedulable staff member. Bookable only while active."""

    id: str
    organization_id: str
    name: str = ""
    is_active: bool = True
    specialties: list[str] = Field(default_factory=list)
    availability: Optional[GroomerAvailability] = None
    time_off: list[TimeOff] = Field(default_factory=list)


class BusinessHours(BaseModel):
    """Organization opening hours in its local timezone."""

    organization_id: str
    open_time: time = time(8, 0)
    close_time: time = time(18, 0)
    timezone: str = "UTC"
    closed_weekdays: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_window(self) -> "BusinessHours":
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time")
        ZoneInfo(self.timezone)
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
