from decimal import Decimal

import pytest

from delivery_engine.models.domain import Coordinate, DeliveryZoneTier
from delivery_engine.services.pricing import (
    estimate_minutes,
    estimate_partner_earnings,
    is_urgent,
    quote_delivery,
    resolve_fee,
)
from delivery_engine.services.routing.osrm_client import RouteEstimate


def _tier(tid: int, lo: str, hi: str, base: str, rate: str, active: bool = True) -> DeliveryZoneTier:
    return DeliveryZoneTier(
        id=tid,
        name=f"Tier {tid}",
        min_distance=Decimal(lo),
        max_distance=Decimal(hi),
        base_fee=Decimal(base),
        per_km_rate=Decimal(rate),
        is_active=active,
    )


TIERS = [_tier(0, "0", "5", "30", "5"), _tier(1, "5.01", "15", "50", "8")]


class StubProvider:
    def __init__(self, estimate: RouteEstimate):
        self._estimate = estimate

    def estimate(self, origin, destination):
        return self._estimate


def test_resolve_fee_inner_tier():
    breakdown = resolve_fee(3, TIERS)

    assert breakdown.base_fee == Decimal("30")
    assert breakdown.distance_fee == Decimal("15")
    assert breakdown.total_fee == Decimal("45.00")
    assert breakdown.matched_zone is TIERS[0]


def test_resolve_fee_second_tier():
    breakdown = resolve_fee(10, TIERS)

    assert breakdown.base_fee == Decimal("50")
    assert breakdown.distance_fee == Decimal("80")
    assert breakdown.total_fee == Decimal("130")
    assert breakdown.matched_zone is TIERS[1]


def test_range_bounds_are_inclusive():
    assert resolve_fee(0, TIERS).matched_zone is TIERS[0]
    assert resolve_fee(5, TIERS).matched_zone is TIERS[0]
    assert resolve_fee(5.01, TIERS).matched_zone is TIERS[1]
    assert resolve_fee(15, TIERS).matched_zone is TIERS[1]


def test_distance_outside_all_tiers_uses_default_fee():
    breakdown = resolve_fee(10000, TIERS)

    assert breakdown.total_fee == Decimal("100")
    assert breakdown.distance_fee == Decimal("0")
    assert breakdown.matched_zone is None


def test_gap_between_tiers_uses_default_fee():
    assert resolve_fee(5.005, TIERS).matched_zone is None


@pytest.mark.parametrize("distance", [float("nan"), float("inf"), Decimal("NaN")])
def test_non_finite_distance_uses_default_fee(distance):
    breakdown = resolve_fee(distance, TIERS)

    assert breakdown.total_fee == Decimal("100")
    assert breakdown.matched_zone is None


def test_custom_default_fee():
    assert resolve_fee(99, TIERS, default_fee=Decimal("75.5")).total_fee == Decimal("75.50")


def test_inactive_tiers_are_ignored():
    tiers = [_tier(0, "0", "5", "30", "5", active=False), _tier(1, "0", "15", "50", "8")]

    assert resolve_fee(3, tiers).matched_zone is tiers[1]
    assert resolve_fee(3, tiers[:1]).matched_zone is None


def test_overlapping_tiers_first_in_input_order_wins():
    tiers = [_tier(7, "0", "10", "20", "1"), _tier(3, "0", "10", "90", "9")]

    assert resolve_fee(4, tiers).matched_zone.id == 7


def test_fee_is_monotonic_within_a_tier():
    distances = [5.01, 6, 7.25, 9.999, 12, 15]
    totals = [resolve_fee(d, TIERS).total_fee for d in distances]

    assert totals == sorted(totals)


def test_rounding_is_half_up():
    tiers = [_tier(0, "0", "10", "0", "1")]

    assert resolve_fee(1.005, tiers).distance_fee == Decimal("1.01")
    assert resolve_fee(2.675, tiers).total_fee == Decimal("2.68")


def test_fee_amounts_have_two_decimal_places():
    breakdown = resolve_fee(3.333, TIERS)

    assert breakdown.distance_fee == Decimal("16.67")
    assert breakdown.total_fee == Decimal("46.67")
    assert breakdown.total_fee.as_tuple().exponent == -2


def test_estimate_minutes():
    assert estimate_minutes(0) == 30
    assert estimate_minutes(2.5) == 55
    assert estimate_minutes(1.25) == 43
    assert estimate_minutes(4, base_minutes=20, minutes_per_km=5) == 40


def test_partner_earnings_split_matches_fee():
    split = estimate_partner_earnings(Decimal("130.00"))

    assert split.commission == Decimal("20")
    assert split.earnings == Decimal("110")
    assert split.commission + split.earnings == Decimal("130")


def test_urgency():
    assert is_urgent(16) is True
    assert is_urgent(15) is False
    assert is_urgent(3, item_count=6) is True
    assert is_urgent(3, item_count=5) is False


def test_quote_delivery_with_great_circle_distance():
    provider = StubProvider(RouteEstimate(distance_km=10.0, duration_min=None, source="haversine"))

    quote = quote_delivery(Coordinate(26.66, 86.20), Coordinate(26.70, 86.10), TIERS, provider=provider)

    assert quote.breakdown.total_fee == Decimal("130")
    assert quote.estimated_minutes == 130
    assert quote.partner_earnings.earnings == Decimal("110")
    assert quote.urgent is False
    assert quote.route.source == "haversine"


def test_quote_delivery_uses_routed_duration_when_available():
    provider = StubProvider(RouteEstimate(distance_km=3.0, duration_min=12.2, source="osrm"))

    quote = quote_delivery(Coordinate(26.66, 86.20), Coordinate(26.67, 86.21), TIERS, provider=provider)

    assert quote.breakdown.total_fee == Decimal("45")
    assert quote.estimated_minutes == 30 + 13


def test_quote_delivery_fallback_fee_is_logged(caplog):
    provider = StubProvider(RouteEstimate(distance_km=250.0, duration_min=None, source="haversine"))

    with caplog.at_level("WARNING"):
        quote = quote_delivery(Coordinate(26.66, 86.20), Coordinate(27.0, 88.0), TIERS, provider=provider, item_count=1)

    assert quote.breakdown.matched_zone is None
    assert quote.breakdown.total_fee == Decimal("100")
    assert quote.urgent is True
    assert "No active delivery zone" in caplog.text
