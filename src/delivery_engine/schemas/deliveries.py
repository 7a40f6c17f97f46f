"""Delivery request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Delivery, StatusChange
from .fees import CoordinateModel

StatusName = Literal["pending", "assigned", "picked_up", "in_transit", "delivered", "cancelled"]


class DeliveryCreateRequest(BaseModel):
    orderId: int
    customerId: Optional[int] = Field(default=None, description="Customer to notify about status changes.")
    pickupAddress: str = "Store Location"
    deliveryAddress: str
    pickupLocation: Optional[CoordinateModel] = None
    deliveryLocation: Optional[CoordinateModel] = None
    estimatedDistance: Optional[float] = Field(
        default=None, ge=0, description="Distance in km, used when no coordinates are supplied."
    )
    deliveryFee: Optional[float] = Field(default=None, ge=0, description="Overrides the zone-based fee.")
    itemCount: int = Field(default=0, ge=0)
    specialInstructions: Optional[str] = None


class DeliveryStatusUpdate(BaseModel):
    status: StatusName
    partnerId: Optional[int] = None


class DeliveryAcceptRequest(BaseModel):
    partnerId: int


class DeliveryModel(BaseModel):
    id: int
    orderId: int
    customerId: Optional[int] = None
    deliveryPartnerId: Optional[int] = None
    status: StatusName
    pickupAddress: str
    deliveryAddress: str
    estimatedDistance: Optional[float] = None
    estimatedTime: Optional[int] = None
    deliveryFee: Optional[float] = None
    specialInstructions: Optional[str] = None
    createdAt: Optional[datetime] = None
    assignedAt: Optional[datetime] = None
    pickedUpAt: Optional[datetime] = None
    deliveredAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_domain(cls, delivery: Delivery) -> "DeliveryModel":
        return cls(
            id=delivery.id,
            orderId=delivery.order_id,
            customerId=delivery.customer_id,
            deliveryPartnerId=delivery.delivery_partner_id,
            status=delivery.status.value,
            pickupAddress=delivery.pickup_address,
            deliveryAddress=delivery.delivery_address,
            estimatedDistance=float(delivery.estimated_distance) if delivery.estimated_distance is not None else None,
            estimatedTime=delivery.estimated_time,
            deliveryFee=float(delivery.delivery_fee) if delivery.delivery_fee is not None else None,
            specialInstructions=delivery.special_instructions,
            createdAt=delivery.created_at,
            assignedAt=delivery.assigned_at,
            pickedUpAt=delivery.picked_up_at,
            deliveredAt=delivery.delivered_at,
            cancelledAt=delivery.cancelled_at,
            updatedAt=delivery.updated_at,
        )


class DeliveryAcceptResponse(BaseModel):
    success: bool
    delivery: DeliveryModel


class StatusChangeModel(BaseModel):
    fromStatus: StatusName
    toStatus: StatusName
    changedAt: datetime
    actorId: Optional[int] = None

    @classmethod
    def from_domain(cls, change: StatusChange) -> "StatusChangeModel":
        return cls(
            fromStatus=change.from_status.value,
            toStatus=change.to_status.value,
            changedAt=change.changed_at,
            actorId=change.actor_id,
        )


class DeliveryHistoryResponse(BaseModel):
    deliveryId: int
    status: StatusName
    history: List[StatusChangeModel]
