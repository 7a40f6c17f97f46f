"""Delivery fee and zone endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...data.zones_repository import get_active_zone_tiers
from ...models.errors import InvalidCoordinateError
from ...schemas.fees import (
    DeliveryQuoteRequest,
    DeliveryQuoteResponse,
    DeliveryZoneModel,
    FeeBreakdownModel,
    FeeCalculationRequest,
    FeeCalculationResponse,
)
from ...services.pricing import quote_delivery, resolve_fee, round_currency
from ...services.pricing.service import to_decimal

router = APIRouter(tags=["delivery-fees"])
logger = logging.getLogger(__name__)


@router.get("/delivery-zones", response_model=list[DeliveryZoneModel])
def list_delivery_zones() -> list[DeliveryZoneModel]:
    return [DeliveryZoneModel.from_domain(tier) for tier in get_active_zone_tiers()]


@router.post("/calculate-delivery-fee", response_model=FeeCalculationResponse)
def calculate_delivery_fee(payload: FeeCalculationRequest) -> FeeCalculationResponse:
    """Price a known distance against the active zone schedule."""
    breakdown = resolve_fee(payload.distance, get_active_zone_tiers(), default_fee=settings.default_delivery_fee)
    if breakdown.matched_zone is None:
        logger.warning(
            f"No active delivery zone covers {payload.distance} km, charging default fee {breakdown.total_fee}"
        )
    zone = breakdown.matched_zone
    return FeeCalculationResponse(
        fee=float(breakdown.total_fee),
        zone=DeliveryZoneModel.from_domain(zone) if zone else None,
        distance=float(round_currency(to_decimal(payload.distance))),
        breakdown=FeeBreakdownModel.from_domain(breakdown) if zone else None,
    )


@router.post("/delivery-fee/quote", response_model=DeliveryQuoteResponse)
def quote_delivery_fee(payload: DeliveryQuoteRequest) -> DeliveryQuoteResponse:
    """Distance, fee, ETA and partner payout for a pickup/dropoff pair."""
    try:
        quote = quote_delivery(
            payload.pickup.to_domain(),
            payload.dropoff.to_domain(),
            get_active_zone_tiers(),
            item_count=payload.itemCount,
        )
    except InvalidCoordinateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    zone = quote.breakdown.matched_zone
    return DeliveryQuoteResponse(
        distance=float(round_currency(to_decimal(quote.route.distance_km))),
        distanceSource=quote.route.source,
        fee=float(quote.breakdown.total_fee),
        zone=DeliveryZoneModel.from_domain(zone) if zone else None,
        breakdown=FeeBreakdownModel.from_domain(quote.breakdown),
        estimatedTime=quote.estimated_minutes,
        estimatedEarnings=float(quote.partner_earnings.earnings),
        platformCommission=float(quote.partner_earnings.commission),
        urgent=quote.urgent,
    )
