from datetime import datetime, timezone
from decimal import Decimal

import pytest

from delivery_engine.models.domain import Delivery, DeliveryStatus, StatusChange
from delivery_engine.models.errors import StaleDeliveryError
from delivery_engine.persistence.deliveries import SupabaseDeliveryRepository

T0 = datetime(2025, 7, 15, 9, 0, tzinfo=timezone.utc)

ROW = {
    "id": 12,
    "order_id": 101,
    "customer_id": 42,
    "delivery_partner_id": None,
    "status": "pending",
    "pickup_address": "Store Location",
    "delivery_address": "Ward 4, Siraha",
    "estimated_distance": "3.00",
    "estimated_time": 60,
    "delivery_fee": "45.00",
    "special_instructions": None,
    "created_at": "2025-07-15T09:00:00",
    "assigned_at": None,
    "picked_up_at": None,
    "delivered_at": None,
    "cancelled_at": None,
    "updated_at": "2025-07-15T09:00:00",
}


class _Response:
    def __init__(self, data):
        self.data = data


class RecordingQuery:
    def __init__(self, client, table):
        self.client = client
        self.calls = [("table", table)]
        client.queries.append(self)

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name,) + args + tuple(sorted(kwargs.items())))
            return self

        return method

    def execute(self):
        return _Response(self.client.responses.pop(0) if self.client.responses else [])


class RecordingSupabase:
    """Records each query chain and answers execute() from a scripted list."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries: list[RecordingQuery] = []

    def table(self, name):
        return RecordingQuery(self, name)


def _delivery(**overrides) -> Delivery:
    values = dict(
        id=12,
        order_id=101,
        customer_id=42,
        pickup_address="Store Location",
        delivery_address="Ward 4, Siraha",
        delivery_fee=Decimal("45.00"),
        created_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return Delivery(**values)


def test_add_lets_database_assign_id():
    client = RecordingSupabase([ROW])
    repo = SupabaseDeliveryRepository(client)

    saved = repo.add(_delivery(id=0))

    insert = client.queries[0].calls[1]
    assert insert[0] == "insert"
    assert "id" not in insert[1]
    assert insert[1]["status"] == "pending"
    assert insert[1]["delivery_fee"] == "45.00"
    assert saved.id == 12
    assert saved.created_at == T0


def test_claiming_unassigned_delivery_filters_on_null_partner():
    assigned_row = dict(ROW, status="assigned", delivery_partner_id=7, assigned_at="2025-07-15T09:05:00")
    client = RecordingSupabase([[assigned_row]])
    repo = SupabaseDeliveryRepository(client)

    saved = repo.save(
        _delivery(status=DeliveryStatus.ASSIGNED, delivery_partner_id=7),
        expected_status=DeliveryStatus.PENDING,
        expected_partner_id=None,
    )

    calls = client.queries[0].calls
    assert calls[0] == ("table", "deliveries")
    assert calls[1][0] == "update"
    assert ("eq", "id", 12) in calls
    assert ("eq", "status", "pending") in calls
    assert ("is_", "delivery_partner_id", "null") in calls
    assert saved.delivery_partner_id == 7
    assert saved.assigned_at == datetime(2025, 7, 15, 9, 5, tzinfo=timezone.utc)


def test_update_of_assigned_delivery_filters_on_current_partner():
    client = RecordingSupabase([[dict(ROW, status="picked_up", delivery_partner_id=7)]])
    repo = SupabaseDeliveryRepository(client)

    repo.save(
        _delivery(status=DeliveryStatus.PICKED_UP, delivery_partner_id=7),
        expected_status=DeliveryStatus.ASSIGNED,
        expected_partner_id=7,
    )

    calls = client.queries[0].calls
    assert ("eq", "status", "assigned") in calls
    assert ("eq", "delivery_partner_id", 7) in calls
    assert not any(call[0] == "is_" for call in calls)


def test_save_matching_no_rows_is_stale():
    client = RecordingSupabase([])
    repo = SupabaseDeliveryRepository(client)

    with pytest.raises(StaleDeliveryError):
        repo.save(
            _delivery(status=DeliveryStatus.ASSIGNED, delivery_partner_id=8),
            expected_status=DeliveryStatus.PENDING,
            expected_partner_id=None,
        )


def test_get_missing_delivery_returns_none():
    repo = SupabaseDeliveryRepository(RecordingSupabase([]))

    assert repo.get(404) is None


def test_partner_list_is_newest_first_and_filters_active():
    client = RecordingSupabase([[dict(ROW, status="assigned", delivery_partner_id=7)]])
    repo = SupabaseDeliveryRepository(client)

    rows = repo.list_for_partner(7, active_only=True)

    calls = client.queries[0].calls
    assert ("eq", "delivery_partner_id", 7) in calls
    assert ("in_", "status", ["assigned", "in_transit", "picked_up"]) in calls
    assert ("order", "created_at", ("desc", True)) in calls
    assert [d.status for d in rows] == [DeliveryStatus.ASSIGNED]


def test_history_rows_map_to_status_changes():
    client = RecordingSupabase(
        [
            {
                "delivery_id": 12,
                "from_status": "pending",
                "to_status": "assigned",
                "changed_at": "2025-07-15T09:05:00",
                "actor_id": 7,
            },
            {
                "delivery_id": 12,
                "from_status": "assigned",
                "to_status": "picked_up",
                "changed_at": "2025-07-15T09:20:00+00:00",
            },
        ]
    )
    repo = SupabaseDeliveryRepository(client)

    changes = repo.history(12)

    assert ("order", "changed_at") in client.queries[0].calls
    assert changes == [
        StatusChange(12, DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED, datetime(2025, 7, 15, 9, 5, tzinfo=timezone.utc), 7),
        StatusChange(12, DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, datetime(2025, 7, 15, 9, 20, tzinfo=timezone.utc), None),
    ]


def test_history_write_failure_is_logged(caplog):
    class BrokenSupabase:
        def table(self, name):
            raise RuntimeError("relation does not exist")

    repo = SupabaseDeliveryRepository(BrokenSupabase())

    with caplog.at_level("WARNING", logger="delivery_engine.persistence.deliveries"):
        repo.record_change(StatusChange(12, DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED, T0, 7))

    assert "Failed to record status history for delivery 12" in caplog.text
    assert caplog.records[0].name == "delivery_engine.persistence.deliveries"
