"""Delivery fee pricing helpers."""

from .service import (
    DeliveryQuote,
    PartnerEarnings,
    estimate_minutes,
    estimate_partner_earnings,
    is_urgent,
    quote_delivery,
    resolve_fee,
    round_currency,
)

__all__ = [
    "DeliveryQuote",
    "PartnerEarnings",
    "estimate_minutes",
    "estimate_partner_earnings",
    "is_urgent",
    "quote_delivery",
    "resolve_fee",
    "round_currency",
]
