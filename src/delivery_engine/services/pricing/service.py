"""Distance based delivery fee resolution."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...config import settings
from ...models.domain import Coordinate, DeliveryZoneTier, FeeBreakdown
from ..routing.osrm_client import RouteDistanceProvider, RouteEstimate

DEFAULT_FEE = Decimal("100.00")
CENTS = Decimal("0.01")
UNITS = Decimal("1")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PartnerEarnings:
    earnings: Decimal
    commission: Decimal


@dataclass(frozen=True, slots=True)
class DeliveryQuote:
    route: RouteEstimate
    breakdown: FeeBreakdown
    estimated_minutes: int
    partner_earnings: PartnerEarnings
    urgent: bool


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 5.01 as 5.01 instead of its binary expansion
    return Decimal(str(value))


def resolve_fee(
    distance_km: float | Decimal,
    tiers: Sequence[DeliveryZoneTier],
    *,
    default_fee: Decimal = DEFAULT_FEE,
) -> FeeBreakdown:
    """Price a delivery distance against an ordered tier schedule.

    The first active tier whose inclusive ``[min_distance, max_distance]`` range
    contains the distance wins. Distances outside every active tier are charged
    ``default_fee`` with no matched zone; this function never raises for a
    missing zone.
    """
    distance = to_decimal(distance_km)
    # NaN and infinite distances cannot fall inside a tier
    candidates = tiers if distance.is_finite() else ()
    for tier in candidates:
        if not tier.is_active or not tier.covers(distance):
            continue
        distance_fee = round_currency(distance * tier.per_km_rate)
        return FeeBreakdown(
            base_fee=round_currency(tier.base_fee),
            distance_fee=distance_fee,
            total_fee=round_currency(tier.base_fee + distance_fee),
            matched_zone=tier,
        )

    fallback = round_currency(to_decimal(default_fee))
    return FeeBreakdown(
        base_fee=fallback,
        distance_fee=round_currency(Decimal(0)),
        total_fee=fallback,
        matched_zone=None,
    )


def estimate_minutes(
    distance_km: float | Decimal,
    *,
    base_minutes: int | None = None,
    minutes_per_km: float | None = None,
) -> int:
    """Estimated delivery time: a fixed handling time plus a per-km allowance."""
    base = settings.eta_base_minutes if base_minutes is None else base_minutes
    per_km = settings.eta_minutes_per_km if minutes_per_km is None else minutes_per_km
    total = Decimal(base) + to_decimal(distance_km) * to_decimal(per_km)
    return int(total.quantize(UNITS, rounding=ROUND_HALF_UP))


def estimate_partner_earnings(total_fee: Decimal, commission_rate: Decimal | None = None) -> PartnerEarnings:
    """Split a fee into the partner payout and platform commission, in whole units."""
    rate = settings.platform_commission_rate if commission_rate is None else to_decimal(commission_rate)
    commission = (total_fee * rate).quantize(UNITS, rounding=ROUND_HALF_UP)
    earnings = (total_fee - commission).quantize(UNITS, rounding=ROUND_HALF_UP)
    return PartnerEarnings(earnings=earnings, commission=commission)


def is_urgent(distance_km: float | Decimal, item_count: int = 0) -> bool:
    return float(distance_km) > settings.urgent_distance_km or item_count > settings.urgent_item_count


def quote_delivery(
    pickup: Coordinate,
    dropoff: Coordinate,
    tiers: Sequence[DeliveryZoneTier],
    *,
    provider: RouteDistanceProvider | None = None,
    item_count: int = 0,
) -> DeliveryQuote:
    """Combine distance, fee, ETA and partner payout for one pickup/dropoff pair."""
    provider = provider or RouteDistanceProvider()
    route = provider.estimate(pickup, dropoff)
    distance = round_currency(to_decimal(route.distance_km))

    breakdown = resolve_fee(distance, tiers, default_fee=settings.default_delivery_fee)
    if breakdown.matched_zone is None:
        logger.warning(f"No active delivery zone covers {distance} km, charging default fee {breakdown.total_fee}")

    if route.duration_min is not None:
        minutes = estimate_minutes(distance, minutes_per_km=0) + math.ceil(route.duration_min)
    else:
        minutes = estimate_minutes(distance)

    return DeliveryQuote(
        route=route,
        breakdown=breakdown,
        estimated_minutes=minutes,
        partner_earnings=estimate_partner_earnings(breakdown.total_fee),
        urgent=is_urgent(distance, item_count),
    )
