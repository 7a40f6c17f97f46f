"""Domain models for delivery pricing and fulfilment records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .errors import InvalidCoordinateError


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat, lon = self.latitude, self.longitude
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinateError(f"Coordinate must be finite, got ({lat}, {lon})")
        if abs(lat) > 90:
            raise InvalidCoordinateError(f"Latitude {lat} is outside [-90, 90]")
        if abs(lon) > 180:
            raise InvalidCoordinateError(f"Longitude {lon} is outside [-180, 180]")


@dataclass(frozen=True, slots=True)
class DeliveryZoneTier:
    """One distance band of a delivery pricing schedule."""

    id: int
    name: str
    min_distance: Decimal
    max_distance: Decimal
    base_fee: Decimal
    per_km_rate: Decimal
    is_active: bool = True

    def covers(self, distance_km: Decimal) -> bool:
        return self.min_distance <= distance_km <= self.max_distance


@dataclass(frozen=True, slots=True)
class FeeBreakdown:
    base_fee: Decimal
    distance_fee: Decimal
    total_fee: Decimal
    matched_zone: Optional[DeliveryZoneTier]


@dataclass(slots=True)
class Delivery:
    """The physical fulfilment leg of a single order."""

    id: int
    order_id: int
    status: DeliveryStatus = DeliveryStatus.PENDING
    customer_id: Optional[int] = None
    delivery_partner_id: Optional[int] = None
    pickup_address: str = ""
    delivery_address: str = ""
    estimated_distance: Optional[Decimal] = None
    estimated_time: Optional[int] = None
    delivery_fee: Optional[Decimal] = None
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class NotificationDirective:
    """Describes a notification for an external collaborator to send.

    Customer notifications carry ``user_id``. Delivery partner notifications
    carry ``partner_id`` instead; the dispatcher resolves it to the partner's
    user account.
    """

    user_id: Optional[int]
    template_key: str
    order_id: Optional[int] = None
    delivery_id: Optional[int] = None
    context: dict[str, Any] = field(default_factory=dict)
    partner_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class StatusChange:
    delivery_id: int
    from_status: DeliveryStatus
    to_status: DeliveryStatus
    changed_at: datetime
    actor_id: Optional[int] = None
