"""Delivery record storage: in-process and Supabase backends."""

from __future__ import annotations

import dataclasses
import itertools
import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Iterable, Optional, Protocol

from ..db.supabase import get_supabase_client
from ..models.domain import Delivery, DeliveryStatus, StatusChange
from ..models.errors import StaleDeliveryError
from ..services.deliveries.state_machine import ACTIVE_STATUSES

ACTIVE_STATUS_VALUES = tuple(sorted(status.value for status in ACTIVE_STATUSES))

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("created_at", "assigned_at", "picked_up_at", "delivered_at", "cancelled_at", "updated_at")
_DECIMAL_FIELDS = ("estimated_distance", "delivery_fee")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class DeliveryRepository(Protocol):
    def add(self, delivery: Delivery) -> Delivery: ...

    def get(self, delivery_id: int) -> Optional[Delivery]: ...

    def list_for_partner(self, partner_id: int, *, active_only: bool = False) -> list[Delivery]: ...

    def list_for_order(self, order_id: int) -> list[Delivery]: ...

    def list_all(self) -> list[Delivery]: ...

    def save(
        self,
        delivery: Delivery,
        *,
        expected_status: DeliveryStatus,
        expected_partner_id: Optional[int],
    ) -> Delivery: ...

    def record_change(self, change: StatusChange) -> None: ...

    def history(self, delivery_id: int) -> list[StatusChange]: ...


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Decode a stored timestamp; values without an offset are UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def delivery_to_record(delivery: Delivery) -> dict[str, Any]:
    record = dataclasses.asdict(delivery)
    record["status"] = delivery.status.value
    for name in _DATETIME_FIELDS:
        value = record.get(name)
        record[name] = value.isoformat() if value is not None else None
    for name in _DECIMAL_FIELDS:
        value = record.get(name)
        record[name] = str(value) if value is not None else None
    return record


def delivery_from_record(row: dict[str, Any]) -> Delivery:
    known = {f.name for f in dataclasses.fields(Delivery)}
    data = {key: value for key, value in row.items() if key in known}
    data["status"] = DeliveryStatus(data.get("status") or DeliveryStatus.PENDING.value)
    for name in _DATETIME_FIELDS:
        if name in data:
            data[name] = parse_timestamp(data[name])
    for name in _DECIMAL_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, Decimal):
            data[name] = Decimal(str(value))
    return Delivery(**data)


def _newest_first(rows: Iterable[Delivery]) -> list[Delivery]:
    return sorted(rows, key=lambda d: (parse_timestamp(d.created_at) or _EPOCH, d.id), reverse=True)


class InMemoryDeliveryRepository:
    """Process-local store. The lock gives save() compare-and-set semantics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[int, Delivery] = {}
        self._history: dict[int, list[StatusChange]] = {}
        self._ids = itertools.count(1)

    def add(self, delivery: Delivery) -> Delivery:
        with self._lock:
            if not delivery.id:
                delivery = dataclasses.replace(delivery, id=next(self._ids))
            self._rows[delivery.id] = delivery
            return delivery

    def get(self, delivery_id: int) -> Optional[Delivery]:
        with self._lock:
            return self._rows.get(delivery_id)

    def list_all(self) -> list[Delivery]:
        with self._lock:
            return _newest_first(self._rows.values())

    def list_for_partner(self, partner_id: int, *, active_only: bool = False) -> list[Delivery]:
        with self._lock:
            rows = [d for d in self._rows.values() if d.delivery_partner_id == partner_id]
        if active_only:
            rows = [d for d in rows if d.status.value in ACTIVE_STATUS_VALUES]
        return _newest_first(rows)

    def list_for_order(self, order_id: int) -> list[Delivery]:
        with self._lock:
            return _newest_first(d for d in self._rows.values() if d.order_id == order_id)

    def save(
        self,
        delivery: Delivery,
        *,
        expected_status: DeliveryStatus,
        expected_partner_id: Optional[int],
    ) -> Delivery:
        with self._lock:
            stored = self._rows.get(delivery.id)
            if (
                stored is None
                or stored.status is not expected_status
                or stored.delivery_partner_id != expected_partner_id
            ):
                raise StaleDeliveryError(f"Delivery {delivery.id} changed since it was read")
            self._rows[delivery.id] = delivery
            return delivery

    def record_change(self, change: StatusChange) -> None:
        with self._lock:
            self._history.setdefault(change.delivery_id, []).append(change)

    def history(self, delivery_id: int) -> list[StatusChange]:
        with self._lock:
            return list(self._history.get(delivery_id, []))


class SupabaseDeliveryRepository:
    """Supabase-backed store; save() filters on the expected row state."""

    def __init__(self, client) -> None:
        self.client = client

    def add(self, delivery: Delivery) -> Delivery:
        record = delivery_to_record(delivery)
        if not record.get("id"):
            record.pop("id", None)
        response = self.client.table("deliveries").insert(record).execute()
        return delivery_from_record(response.data[0])

    def get(self, delivery_id: int) -> Optional[Delivery]:
        response = self.client.table("deliveries").select("*").eq("id", delivery_id).limit(1).execute()
        if not response.data:
            return None
        return delivery_from_record(response.data[0])

    def list_all(self) -> list[Delivery]:
        response = self.client.table("deliveries").select("*").order("created_at", desc=True).execute()
        return [delivery_from_record(row) for row in response.data or []]

    def list_for_partner(self, partner_id: int, *, active_only: bool = False) -> list[Delivery]:
        query = self.client.table("deliveries").select("*").eq("delivery_partner_id", partner_id)
        if active_only:
            query = query.in_("status", list(ACTIVE_STATUS_VALUES))
        response = query.order("created_at", desc=True).execute()
        return [delivery_from_record(row) for row in response.data or []]

    def list_for_order(self, order_id: int) -> list[Delivery]:
        response = (
            self.client.table("deliveries")
            .select("*")
            .eq("order_id", order_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [delivery_from_record(row) for row in response.data or []]

    def save(
        self,
        delivery: Delivery,
        *,
        expected_status: DeliveryStatus,
        expected_partner_id: Optional[int],
    ) -> Delivery:
        record = delivery_to_record(delivery)
        record.pop("id", None)
        query = (
            self.client.table("deliveries")
            .update(record)
            .eq("id", delivery.id)
            .eq("status", expected_status.value)
        )
        if expected_partner_id is None:
            query = query.is_("delivery_partner_id", "null")
        else:
            query = query.eq("delivery_partner_id", expected_partner_id)
        response = query.execute()
        if not response.data:
            raise StaleDeliveryError(f"Delivery {delivery.id} changed since it was read")
        return delivery_from_record(response.data[0])

    def record_change(self, change: StatusChange) -> None:
        try:
            self.client.table("delivery_status_history").insert(
                {
                    "delivery_id": change.delivery_id,
                    "from_status": change.from_status.value,
                    "to_status": change.to_status.value,
                    "changed_at": change.changed_at.isoformat(),
                    "actor_id": change.actor_id,
                }
            ).execute()
        except Exception as e:
            logger.warning(f"Failed to record status history for delivery {change.delivery_id}: {e}")

    def history(self, delivery_id: int) -> list[StatusChange]:
        response = (
            self.client.table("delivery_status_history")
            .select("*")
            .eq("delivery_id", delivery_id)
            .order("changed_at")
            .execute()
        )
        return [
            StatusChange(
                delivery_id=row["delivery_id"],
                from_status=DeliveryStatus(row["from_status"]),
                to_status=DeliveryStatus(row["to_status"]),
                changed_at=parse_timestamp(row["changed_at"]),
                actor_id=row.get("actor_id"),
            )
            for row in response.data or []
        ]


@lru_cache()
def get_delivery_repository() -> DeliveryRepository:
    """Supabase repository when configured, otherwise a process-local store."""
    supabase = get_supabase_client()
    if supabase:
        return SupabaseDeliveryRepository(supabase)
    return InMemoryDeliveryRepository()
