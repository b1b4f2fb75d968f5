"""Shared time and money helpers used across the scheduling engines."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents, half-up.

    Examples:
        >>> to_money(Decimal("10.005"))
        Decimal('10.01')
        >>> to_money(Decimal("15"))
        Decimal('15.00')
    """
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True if [a_start, a_end) overlaps [b_start, b_end).

    Back-to-back windows (one ending exactly when the other starts) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def format_time(value: datetime) -> str:
    """Format as '10:00 AM' without a leading zero on the hour."""
    hour = value.hour % 12 or 12
    ampm = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {ampm}"
