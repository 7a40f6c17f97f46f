"""High-level orchestration for delivery creation and status changes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from ...config import settings
from ...data.zones_repository import get_active_zone_tiers
from ...models.domain import Delivery, DeliveryStatus, DeliveryZoneTier, StatusChange
from ...models.errors import (
    AlreadyAssignedError,
    ConcurrentUpdateError,
    DeliveryNotFoundError,
    StaleDeliveryError,
)
from ...persistence.deliveries import DeliveryRepository, get_delivery_repository
from ...persistence.notifications import dispatch_notifications
from ...schemas.deliveries import DeliveryCreateRequest
from ..pricing.service import estimate_minutes, quote_delivery, resolve_fee, round_currency, to_decimal
from ..routing.osrm_client import RouteDistanceProvider
from .state_machine import transition

logger = logging.getLogger(__name__)


def _repository(repository: DeliveryRepository | None) -> DeliveryRepository:
    return repository if repository is not None else get_delivery_repository()


def _ensure_delivery(repository: DeliveryRepository, delivery_id: int) -> Delivery:
    delivery = repository.get(delivery_id)
    if delivery is None:
        raise DeliveryNotFoundError(f"Delivery {delivery_id} not found")
    return delivery


def create_delivery(
    payload: DeliveryCreateRequest,
    *,
    repository: DeliveryRepository | None = None,
    tiers: Sequence[DeliveryZoneTier] | None = None,
    provider: RouteDistanceProvider | None = None,
    now: Optional[datetime] = None,
) -> Delivery:
    """Create a pending, unassigned delivery priced from coordinates or a known distance."""
    repo = _repository(repository)
    schedule = tiers if tiers is not None else get_active_zone_tiers()

    distance: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    minutes: Optional[int] = None

    if payload.pickupLocation is not None and payload.deliveryLocation is not None:
        quote = quote_delivery(
            payload.pickupLocation.to_domain(),
            payload.deliveryLocation.to_domain(),
            schedule,
            provider=provider,
            item_count=payload.itemCount,
        )
        distance = round_currency(to_decimal(quote.route.distance_km))
        fee = quote.breakdown.total_fee
        minutes = quote.estimated_minutes
    elif payload.estimatedDistance is not None:
        distance = round_currency(to_decimal(payload.estimatedDistance))
        breakdown = resolve_fee(distance, schedule, default_fee=settings.default_delivery_fee)
        if breakdown.matched_zone is None:
            logger.warning(f"No active delivery zone covers {distance} km, charging default fee {breakdown.total_fee}")
        fee = breakdown.total_fee
        minutes = estimate_minutes(distance)

    if payload.deliveryFee is not None:
        fee = round_currency(to_decimal(payload.deliveryFee))

    created_at = now or datetime.now(timezone.utc)
    delivery = repo.add(
        Delivery(
            id=0,
            order_id=payload.orderId,
            customer_id=payload.customerId,
            status=DeliveryStatus.PENDING,
            pickup_address=payload.pickupAddress,
            delivery_address=payload.deliveryAddress,
            estimated_distance=distance,
            estimated_time=minutes,
            delivery_fee=fee,
            special_instructions=payload.specialInstructions,
            created_at=created_at,
            updated_at=created_at,
        )
    )
    logger.info(f"Created delivery {delivery.id} for order {delivery.order_id} (fee={fee}, distance={distance} km)")
    return delivery


def get_delivery(delivery_id: int, *, repository: DeliveryRepository | None = None) -> Delivery:
    return _ensure_delivery(_repository(repository), delivery_id)


def update_delivery_status(
    delivery_id: int,
    status: DeliveryStatus | str,
    partner_id: Optional[int] = None,
    *,
    repository: DeliveryRepository | None = None,
    now: Optional[datetime] = None,
    partner_template: str = "delivery.accepted",
) -> Delivery:
    """Validate and commit a status change, then dispatch its notifications.

    The write is conditional on the status and partner that were read, so two
    partners racing to accept the same delivery cannot both win.
    """
    repo = _repository(repository)
    current = _ensure_delivery(repo, delivery_id)
    result = transition(current, status, partner_id, now=now, partner_template=partner_template)

    try:
        saved = repo.save(
            result.delivery,
            expected_status=current.status,
            expected_partner_id=current.delivery_partner_id,
        )
    except StaleDeliveryError as exc:
        latest = repo.get(delivery_id)
        if (
            result.change.to_status is DeliveryStatus.ASSIGNED
            and latest is not None
            and latest.delivery_partner_id is not None
        ):
            raise AlreadyAssignedError(
                f"Delivery {delivery_id} was accepted by another partner",
                partner_id=latest.delivery_partner_id,
                from_status=current.status.value,
                to_status=DeliveryStatus.ASSIGNED.value,
            ) from exc
        raise ConcurrentUpdateError(
            f"Delivery {delivery_id} was updated concurrently, please retry"
        ) from exc

    repo.record_change(result.change)
    logger.info(
        f"Delivery {delivery_id}: {result.change.from_status.value} -> {result.change.to_status.value}"
        f" (partner={saved.delivery_partner_id})"
    )
    dispatch_notifications(result.notifications)
    return saved


def accept_delivery(
    delivery_id: int,
    partner_id: int,
    *,
    repository: DeliveryRepository | None = None,
    now: Optional[datetime] = None,
) -> Delivery:
    return update_delivery_status(
        delivery_id,
        DeliveryStatus.ASSIGNED,
        partner_id,
        repository=repository,
        now=now,
    )


def assign_delivery(
    delivery_id: int,
    partner_id: int,
    *,
    repository: DeliveryRepository | None = None,
    now: Optional[datetime] = None,
) -> Delivery:
    """Hand a pending delivery to a partner on their behalf (admin dispatch)."""
    return update_delivery_status(
        delivery_id,
        DeliveryStatus.ASSIGNED,
        partner_id,
        repository=repository,
        now=now,
        partner_template="delivery.partner_assigned",
    )


def list_all_deliveries(*, repository: DeliveryRepository | None = None) -> list[Delivery]:
    return _repository(repository).list_all()


def list_partner_deliveries(
    partner_id: int,
    *,
    active_only: bool = False,
    repository: DeliveryRepository | None = None,
) -> list[Delivery]:
    return _repository(repository).list_for_partner(partner_id, active_only=active_only)


def list_order_deliveries(order_id: int, *, repository: DeliveryRepository | None = None) -> list[Delivery]:
    return _repository(repository).list_for_order(order_id)


def get_status_history(
    delivery_id: int,
    *,
    repository: DeliveryRepository | None = None,
) -> tuple[Delivery, list[StatusChange]]:
    repo = _repository(repository)
    delivery = _ensure_delivery(repo, delivery_id)
    return delivery, repo.history(delivery_id)
