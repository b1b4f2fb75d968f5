"""Organization booking policy model."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ConfirmationMode(str, Enum):
    AUTO_CONFIRM = "auto_confirm"
    REQUEST_ONLY = "request_only"


class BookingPolicies(BaseModel):
    """Deposit, fee, confirmation and booking-window rules. One per organization."""

    organization_id: str
    deposit_required: bool = False
    deposit_percentage: Decimal = Field(default=Decimal("25"), ge=0, le=100)
    deposit_minimum: Decimal = Field(default=Decimal("0"), ge=0)
    cancellation_window_hours: int = Field(default=24, ge=0)
    late_cancellation_fee_percentage: Decimal = Field(default=Decimal("50"), ge=0, le=100)
    no_show_fee_percentage: Decimal = Field(default=Decimal("100"), ge=0, le=100)
    new_client_mode: ConfirmationMode = ConfirmationMode.REQUEST_ONLY
    existing_client_mode: ConfirmationMode = ConfirmationMode.AUTO_CONFIRM
    min_advance_booking_hours: int = Field(default=0, ge=0)
    max_advance_booking_days: int = Field(default=90, ge=0)
    max_pets_per_appointment: int = Field(default=3, ge=1)
