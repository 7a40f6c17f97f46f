"""Delivery status transitions and the notifications they raise."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ...models.domain import Delivery, DeliveryStatus, NotificationDirective, StatusChange
from ...models.errors import AlreadyAssignedError, IllegalTransitionError, PartnerRequiredError

TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED}),
    DeliveryStatus.PICKED_UP: frozenset({DeliveryStatus.IN_TRANSIT}),
    DeliveryStatus.IN_TRANSIT: frozenset({DeliveryStatus.DELIVERED}),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT})

# Timestamp field stamped when a delivery enters the status.
TIMESTAMP_FIELDS: dict[DeliveryStatus, str] = {
    DeliveryStatus.ASSIGNED: "assigned_at",
    DeliveryStatus.PICKED_UP: "picked_up_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.CANCELLED: "cancelled_at",
}


@dataclass(frozen=True, slots=True)
class TransitionResult:
    delivery: Delivery
    notifications: tuple[NotificationDirective, ...]
    change: StatusChange


def parse_status(value: DeliveryStatus | str) -> DeliveryStatus:
    if isinstance(value, DeliveryStatus):
        return value
    try:
        return DeliveryStatus(str(value).strip().lower())
    except ValueError as exc:
        raise IllegalTransitionError(f"Unknown delivery status '{value}'", to_status=str(value)) from exc


def allowed_transitions(status: DeliveryStatus | str) -> frozenset[DeliveryStatus]:
    return TRANSITIONS[parse_status(status)]


def is_terminal(status: DeliveryStatus | str) -> bool:
    return not allowed_transitions(status)


def _as_utc(value: datetime) -> datetime:
    # Naive values are stored UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _latest_timestamp(delivery: Delivery) -> Optional[datetime]:
    stamps = [
        _as_utc(getattr(delivery, name))
        for name in ("assigned_at", "picked_up_at", "delivered_at", "cancelled_at")
        if getattr(delivery, name) is not None
    ]
    return max(stamps) if stamps else None


def _notifications_for(
    delivery: Delivery,
    previous: Delivery,
    to_status: DeliveryStatus,
    partner_template: str,
) -> tuple[NotificationDirective, ...]:
    context = {"status": to_status.value, "order_id": delivery.order_id}
    directives: list[NotificationDirective] = []
    if delivery.customer_id is not None:
        directives.append(
            NotificationDirective(
                user_id=delivery.customer_id,
                template_key=f"delivery.{to_status.value}",
                order_id=delivery.order_id,
                delivery_id=delivery.id,
                context=context,
            )
        )
    if to_status is DeliveryStatus.ASSIGNED:
        directives.append(
            NotificationDirective(
                user_id=None,
                partner_id=delivery.delivery_partner_id,
                template_key=partner_template,
                order_id=delivery.order_id,
                delivery_id=delivery.id,
                context=context,
            )
        )
    elif to_status is DeliveryStatus.CANCELLED and previous.delivery_partner_id is not None:
        directives.append(
            NotificationDirective(
                user_id=None,
                partner_id=previous.delivery_partner_id,
                template_key="delivery.cancelled_partner",
                order_id=delivery.order_id,
                delivery_id=delivery.id,
                context=context,
            )
        )
    return tuple(directives)


def transition(
    delivery: Delivery,
    to_status: DeliveryStatus | str,
    partner_id: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
    partner_template: str = "delivery.accepted",
) -> TransitionResult:
    """Apply a status change to a delivery and describe its side effects.

    The input record is left untouched; the updated copy is returned along with
    the notification directives for the caller to dispatch and the status change
    to record. Raises ``AlreadyAssignedError`` when a second partner tries to
    take a delivery, ``PartnerRequiredError`` for an assignment without a
    partner and ``IllegalTransitionError`` for any other disallowed move.
    ``partner_template`` selects the message sent to the newly assigned partner.
    """
    target = parse_status(to_status)
    current = delivery.status

    if (
        target is DeliveryStatus.ASSIGNED
        and current in (DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED)
        and delivery.delivery_partner_id is not None
    ):
        raise AlreadyAssignedError(
            f"Delivery {delivery.id} is already assigned to partner {delivery.delivery_partner_id}",
            partner_id=delivery.delivery_partner_id,
            from_status=current.value,
            to_status=target.value,
        )

    if target not in TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"Cannot move delivery {delivery.id} from '{current.value}' to '{target.value}'",
            from_status=current.value,
            to_status=target.value,
        )

    if target is DeliveryStatus.ASSIGNED and partner_id is None:
        raise PartnerRequiredError(
            f"A delivery partner is required to assign delivery {delivery.id}",
            from_status=current.value,
            to_status=target.value,
        )

    stamp = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    latest = _latest_timestamp(delivery)
    if latest is not None and stamp < latest:
        stamp = latest

    updates: dict = {"status": target, "updated_at": stamp}
    if target is DeliveryStatus.ASSIGNED:
        updates["delivery_partner_id"] = partner_id
    timestamp_field = TIMESTAMP_FIELDS.get(target)
    if timestamp_field:
        updates[timestamp_field] = stamp

    updated = dataclasses.replace(delivery, **updates)
    change = StatusChange(
        delivery_id=delivery.id,
        from_status=current,
        to_status=target,
        changed_at=stamp,
        actor_id=partner_id if partner_id is not None else delivery.delivery_partner_id,
    )
    return TransitionResult(
        delivery=updated,
        notifications=_notifications_for(updated, delivery, target, partner_template),
        change=change,
    )
