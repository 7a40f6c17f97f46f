"""In-app notification persistence for delivery status updates."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..db.supabase import get_supabase_client
from ..models.domain import NotificationDirective

logger = logging.getLogger(__name__)

# template key -> (title, message, type)
TEMPLATES: dict[str, tuple[str, str, str]] = {
    "delivery.assigned": (
        "Delivery Partner Assigned",
        "Your order #{order_id} has been assigned to a delivery partner. You will receive updates as your order is being delivered.",
        "delivery_update",
    ),
    "delivery.accepted": (
        "Delivery Accepted",
        "You have successfully accepted delivery for Order #{order_id}",
        "success",
    ),
    "delivery.partner_assigned": (
        "New Delivery Assigned",
        "You have been assigned a new delivery. Please check your dashboard for details.",
        "info",
    ),
    "delivery.picked_up": (
        "Order Picked Up",
        "Your order #{order_id} has been picked up and will be on its way shortly.",
        "delivery_update",
    ),
    "delivery.in_transit": (
        "Order On The Way",
        "Your order #{order_id} is on the way.",
        "delivery_update",
    ),
    "delivery.delivered": (
        "Order Delivered",
        "Your order #{order_id} has been delivered. Enjoy!",
        "success",
    ),
    "delivery.cancelled": (
        "Delivery Cancelled",
        "The delivery for your order #{order_id} has been cancelled.",
        "warning",
    ),
    "delivery.cancelled_partner": (
        "Delivery Cancelled",
        "Delivery for Order #{order_id} was cancelled. No further action is needed.",
        "warning",
    ),
}

_FALLBACK = ("Delivery Status Updated", "Your delivery status has been updated to: {status}", "info")


def render(directive: NotificationDirective, user_id: Optional[int] = None) -> dict:
    title, message, kind = TEMPLATES.get(directive.template_key, _FALLBACK)
    values = {"order_id": directive.order_id, "status": "", **directive.context}
    return {
        "user_id": directive.user_id if user_id is None else user_id,
        "title": title,
        "message": message.format(**values),
        "type": kind,
        "order_id": directive.order_id,
        "is_read": False,
    }


def _partner_user_ids(supabase, partner_ids: set[int]) -> dict[int, int]:
    """Map delivery partner ids to the user accounts that receive notifications."""
    response = (
        supabase.table("delivery_partners")
        .select("id, user_id")
        .in_("id", sorted(partner_ids))
        .execute()
    )
    return {row["id"]: row["user_id"] for row in response.data or []}


def dispatch_notifications(directives: Iterable[NotificationDirective]) -> int:
    """Store rendered notifications; returns how many were written.

    Failures are logged and swallowed: the delivery change they describe has
    already been committed.
    """
    pending = [d for d in directives if d.user_id is not None or d.partner_id is not None]
    if not pending:
        return 0

    supabase = get_supabase_client()
    if not supabase:
        for directive in pending:
            row = render(directive)
            recipient = (
                f"user {directive.user_id}"
                if directive.user_id is not None
                else f"delivery partner {directive.partner_id}"
            )
            logger.info(f"Notification for {recipient}: {row['title']} - {row['message']}")
        return len(pending)

    try:
        partner_ids = {d.partner_id for d in pending if d.user_id is None}
        partner_users = _partner_user_ids(supabase, partner_ids) if partner_ids else {}
        rows = []
        for directive in pending:
            user_id = directive.user_id if directive.user_id is not None else partner_users.get(directive.partner_id)
            if user_id is None:
                logger.warning(
                    f"No user account for delivery partner {directive.partner_id}, "
                    f"skipping '{directive.template_key}' notification"
                )
                continue
            rows.append(render(directive, user_id=user_id))
        if rows:
            supabase.table("notifications").insert(rows).execute()
    except Exception as e:
        logger.warning(f"Failed to store {len(pending)} delivery notification(s): {e}")
        return 0
    return len(rows)
