"""Pydantic request/response models for delivery fee endpoints."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Coordinate, DeliveryZoneTier, FeeBreakdown


class CoordinateModel(BaseModel):
    latitude: float
    longitude: float

    def to_domain(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class DeliveryZoneModel(BaseModel):
    """Zone tier in its persisted layout: distances and fees as decimal strings."""

    id: int
    name: str
    minDistance: str
    maxDistance: str
    baseFee: str
    perKmRate: str
    isActive: bool

    @classmethod
    def from_domain(cls, tier: DeliveryZoneTier) -> "DeliveryZoneModel":
        return cls(
            id=tier.id,
            name=tier.name,
            minDistance=str(tier.min_distance),
            maxDistance=str(tier.max_distance),
            baseFee=str(tier.base_fee),
            perKmRate=str(tier.per_km_rate),
            isActive=tier.is_active,
        )


class FeeBreakdownModel(BaseModel):
    baseFee: float
    distanceFee: float
    totalFee: float

    @classmethod
    def from_domain(cls, breakdown: FeeBreakdown) -> "FeeBreakdownModel":
        return cls(
            baseFee=float(breakdown.base_fee),
            distanceFee=float(breakdown.distance_fee),
            totalFee=float(breakdown.total_fee),
        )


class FeeCalculationRequest(BaseModel):
    distance: float = Field(..., ge=0, description="Delivery distance in kilometres.")


class FeeCalculationResponse(BaseModel):
    fee: float
    zone: Optional[DeliveryZoneModel] = None
    distance: float
    breakdown: Optional[FeeBreakdownModel] = None


class DeliveryQuoteRequest(BaseModel):
    pickup: CoordinateModel
    dropoff: CoordinateModel
    itemCount: int = Field(default=0, ge=0, description="Number of items in the order.")


class DeliveryQuoteResponse(BaseModel):
    distance: float
    distanceSource: Literal["osrm", "haversine"]
    fee: float
    zone: Optional[DeliveryZoneModel] = None
    breakdown: FeeBreakdownModel
    estimatedTime: int = Field(..., description="Estimated delivery time in minutes.")
    estimatedEarnings: float
    platformCommission: float
    urgent: bool
