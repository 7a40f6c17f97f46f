"""Domain models and errors."""

from .domain import (
    Coordinate,
    Delivery,
    DeliveryStatus,
    DeliveryZoneTier,
    FeeBreakdown,
    NotificationDirective,
    StatusChange,
)
from .errors import (
    AlreadyAssignedError,
    ConcurrentUpdateError,
    DeliveryError,
    DeliveryNotFoundError,
    IllegalTransitionError,
    InvalidCoordinateError,
    PartnerRequiredError,
    StaleDeliveryError,
)

__all__ = [
    "AlreadyAssignedError",
    "ConcurrentUpdateError",
    "Coordinate",
    "Delivery",
    "DeliveryError",
    "DeliveryNotFoundError",
    "DeliveryStatus",
    "DeliveryZoneTier",
    "FeeBreakdown",
    "IllegalTransitionError",
    "InvalidCoordinateError",
    "NotificationDirective",
    "PartnerRequiredError",
    "StaleDeliveryError",
    "StatusChange",
]
