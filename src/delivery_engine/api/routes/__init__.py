"""Route group exports."""

from . import deliveries, fees, health

__all__ = ["deliveries", "fees", "health"]
