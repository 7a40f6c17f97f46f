"""Delivery lifecycle services."""

from .state_machine import (
    ACTIVE_STATUSES,
    TRANSITIONS,
    TransitionResult,
    allowed_transitions,
    is_terminal,
    transition,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TRANSITIONS",
    "TransitionResult",
    "allowed_transitions",
    "is_terminal",
    "transition",
]
