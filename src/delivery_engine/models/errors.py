"""Exceptions raised by the delivery pricing and fulfilment core."""

from __future__ import annotations


class DeliveryError(Exception):
    """Base class for delivery domain errors."""


class InvalidCoordinateError(DeliveryError, ValueError):
    """Latitude or longitude outside the valid range."""


class IllegalTransitionError(DeliveryError):
    """The requested status change is not permitted from the current status."""

    def __init__(self, message: str, *, from_status: str | None = None, to_status: str | None = None) -> None:
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status


class PartnerRequiredError(IllegalTransitionError):
    """Assignment was requested without a delivery partner."""


class AlreadyAssignedError(IllegalTransitionError):
    """Another delivery partner already holds this delivery."""

    def __init__(self, message: str, *, partner_id: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.partner_id = partner_id


class DeliveryNotFoundError(DeliveryError, LookupError):
    pass


class StaleDeliveryError(DeliveryError):
    """The stored delivery changed between read and write."""


class ConcurrentUpdateError(DeliveryError):
    """A concurrent writer changed the delivery before this update committed."""
