"""
Exceptions raised by the scheduling core.

Every error is a per-request failure returned to the caller; none is
fatal and none leaves a partial write behind.
"""


class SchedulingError(Exception):
    """Base exception for all scheduling core errors."""


class ValidationError(SchedulingError):
    """Malformed booking input: empty pet list, too many pets, bad window or duration."""


class CatalogError(SchedulingError):
    """A referenced catalog entry no longer resolves against the active catalog."""


class UnknownServiceError(CatalogError):
    """Raised when a service id is unknown, inactive, or belongs to another organization."""

    def __init__(self, service_id: str) -> None:
        super().__init__(f"Service '{service_id}' is not in the active catalog.")
        self.service_id = service_id


class UnknownModifierError(CatalogError):
    """Raised when a modifier id is not one of the selected service's modifiers."""

    def __init__(self, modifier_id: str, service_id: str) -> None:
        super().__init__(
            f"Modifier '{modifier_id}' does not belong to service '{service_id}'."
        )
        self.modifier_id = modifier_id
        self.service_id = service_id


class SlotConflictError(SchedulingError):
    """Raised when the chosen slot was taken by another booking before commit."""


class InvalidTransitionError(SchedulingError):
    """Raised when an appointment status change is not allowed from its current status."""


class AppointmentNotFoundError(SchedulingError):
    """Raised when an appointment id does not exist."""

    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment '{appointment_id}' not found.")
        self.appointment_id = appointment_id


class FeatureNotAvailableError(SchedulingError):
    """Raised when the organization's plan does not include a gated feature."""
