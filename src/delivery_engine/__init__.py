"""Delivery pricing and fulfilment service for the marketplace."""

__version__ = "0.1.0"
