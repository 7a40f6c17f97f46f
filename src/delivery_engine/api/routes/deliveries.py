"""API routes for delivery records and status transitions."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Path, Query, status

from ...models.errors import (
    AlreadyAssignedError,
    ConcurrentUpdateError,
    DeliveryError,
    DeliveryNotFoundError,
    IllegalTransitionError,
    InvalidCoordinateError,
)
from ...schemas.deliveries import (
    DeliveryAcceptRequest,
    DeliveryAcceptResponse,
    DeliveryCreateRequest,
    DeliveryHistoryResponse,
    DeliveryModel,
    DeliveryStatusUpdate,
    StatusChangeModel,
)
from ...services.deliveries import service as deliveries_service

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


def _to_http_error(exc: DeliveryError) -> HTTPException:
    # AlreadyAssignedError subclasses IllegalTransitionError, so it is checked first.
    if isinstance(exc, AlreadyAssignedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ConcurrentUpdateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, DeliveryNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (IllegalTransitionError, InvalidCoordinateError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=DeliveryModel, status_code=status.HTTP_201_CREATED)
def create_delivery(payload: DeliveryCreateRequest) -> DeliveryModel:
    try:
        delivery = deliveries_service.create_delivery(payload)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryModel.from_domain(delivery)


@router.get("", response_model=list[DeliveryModel])
def list_deliveries() -> list[DeliveryModel]:
    return [DeliveryModel.from_domain(delivery) for delivery in deliveries_service.list_all_deliveries()]


@router.get("/partner/{partner_id}", response_model=list[DeliveryModel])
def get_partner_deliveries(
    partner_id: int = Path(..., description="Delivery partner identifier"),
    active_only: bool = Query(default=False, description="Only assigned, picked up or in transit deliveries"),
) -> list[DeliveryModel]:
    deliveries = deliveries_service.list_partner_deliveries(partner_id, active_only=active_only)
    return [DeliveryModel.from_domain(delivery) for delivery in deliveries]


@router.get("/order/{order_id}", response_model=list[DeliveryModel])
def get_order_deliveries(order_id: int) -> list[DeliveryModel]:
    deliveries = deliveries_service.list_order_deliveries(order_id)
    return [DeliveryModel.from_domain(delivery) for delivery in deliveries]


@router.get("/{delivery_id}", response_model=DeliveryModel)
def get_delivery(delivery_id: int) -> DeliveryModel:
    try:
        delivery = deliveries_service.get_delivery(delivery_id)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryModel.from_domain(delivery)


@router.get("/{delivery_id}/history", response_model=DeliveryHistoryResponse)
def get_delivery_history(delivery_id: int) -> DeliveryHistoryResponse:
    try:
        delivery, changes = deliveries_service.get_status_history(delivery_id)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryHistoryResponse(
        deliveryId=delivery.id,
        status=delivery.status.value,
        history=[StatusChangeModel.from_domain(change) for change in changes],
    )


@router.put("/{delivery_id}/status", response_model=DeliveryModel)
def update_delivery_status(delivery_id: int, payload: DeliveryStatusUpdate) -> DeliveryModel:
    """Move a delivery to a new status and notify the order's customer."""
    try:
        delivery = deliveries_service.update_delivery_status(delivery_id, payload.status, payload.partnerId)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryModel.from_domain(delivery)


@router.post("/{delivery_id}/accept", response_model=DeliveryAcceptResponse)
def accept_delivery(delivery_id: int, payload: DeliveryAcceptRequest) -> DeliveryAcceptResponse:
    try:
        delivery = deliveries_service.accept_delivery(delivery_id, payload.partnerId)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryAcceptResponse(success=True, delivery=DeliveryModel.from_domain(delivery))


@router.post("/{delivery_id}/assign/{partner_id}", response_model=DeliveryModel)
def assign_delivery(delivery_id: int, partner_id: int) -> DeliveryModel:
    """Dispatch a pending delivery to a partner and notify them."""
    try:
        delivery = deliveries_service.assign_delivery(delivery_id, partner_id)
    except DeliveryError as exc:
        raise _to_http_error(exc) from exc
    return DeliveryModel.from_domain(delivery)
