import json
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook

from delivery_engine.data import zones_repository


class _Response:
    def __init__(self, data):
        self.data = data


class FakeZonesTable:
    def __init__(self, rows):
        self.rows = rows

    def select(self, *args, **kwargs):
        return self

    def order(self, *args, **kwargs):
        return self

    def execute(self):
        return _Response(self.rows)


class FakeSupabase:
    def __init__(self, rows):
        self.rows = rows
        self.tables: list[str] = []

    def table(self, name):
        self.tables.append(name)
        return FakeZonesTable(self.rows)


@pytest.fixture(autouse=True)
def clear_zone_cache(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(zones_repository, "get_supabase_client", lambda: None)
    zones_repository.get_zone_tiers.cache_clear()
    yield
    zones_repository.get_zone_tiers.cache_clear()


def _write_workbook(path: Path, header, rows) -> Path:
    wb = Workbook()
    sheet = wb.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    wb.save(path)
    return path


def test_missing_file_falls_back_to_default_schedule(tmp_path: Path):
    tiers = zones_repository.get_zone_tiers(tmp_path / "absent.xlsx")

    assert tiers == zones_repository.DEFAULT_ZONE_TIERS
    assert [t.name for t in tiers] == ["Inner City", "Suburban", "Rural", "Extended Rural"]


def test_loads_tiers_from_workbook(tmp_path: Path):
    path = _write_workbook(
        tmp_path / "zones.xlsx",
        ["id", "name", "minDistance", "maxDistance", "baseFee", "perKmRate", "isActive"],
        [
            [1, "Town", 0, 3, 25, 4, True],
            [2, "Outskirts", 3.01, 12, 45.5, 7.25, "yes"],
            [3, "Closed", 12.01, 40, 90, 10, False],
            [None, None, None, None, None, None, None],
        ],
    )

    tiers = zones_repository.get_zone_tiers(path)

    assert [t.name for t in tiers] == ["Town", "Outskirts", "Closed"]
    assert tiers[1].min_distance == Decimal("3.01")
    assert tiers[1].base_fee == Decimal("45.5")
    assert tiers[1].per_km_rate == Decimal("7.25")
    assert [t.is_active for t in tiers] == [True, True, False]
    assert [t.name for t in zones_repository.get_active_zone_tiers(path)] == ["Town", "Outskirts"]


def test_workbook_missing_columns_is_rejected(tmp_path: Path):
    path = _write_workbook(tmp_path / "zones.xlsx", ["name", "baseFee"], [["Town", 25]])

    with pytest.raises(ValueError, match="missing columns"):
        zones_repository.get_zone_tiers(path)


def test_loads_tiers_from_json_and_skips_bad_rows(tmp_path: Path, caplog):
    path = tmp_path / "zones.json"
    path.write_text(
        json.dumps(
            {
                "zones": [
                    {"id": 1, "name": "Inner", "min_distance": "0", "max_distance": "5", "base_fee": "30.00", "per_km_rate": "5.00", "is_active": True},
                    {"id": 2, "name": "Broken", "min_distance": "abc", "max_distance": "9", "base_fee": "1", "per_km_rate": "1"},
                    {"id": 3, "name": "Backwards", "min_distance": "9", "max_distance": "2", "base_fee": "1", "per_km_rate": "1"},
                ]
            }
        ),
        encoding="utf-8",
    )

    with caplog.at_level("WARNING"):
        tiers = zones_repository.get_zone_tiers(path)

    assert [t.name for t in tiers] == ["Inner"]
    assert "Skipping invalid delivery zone row 2" in caplog.text
    assert "Skipping invalid delivery zone row 3" in caplog.text


def test_database_rows_take_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    rows = [
        {"id": 9, "name": "Metro", "min_distance": "0", "max_distance": "8", "base_fee": "40.00", "per_km_rate": "6.00", "is_active": True},
    ]
    fake = FakeSupabase(rows)
    monkeypatch.setattr(zones_repository, "get_supabase_client", lambda: fake)
    file_path = _write_workbook(
        tmp_path / "zones.xlsx",
        ["minDistance", "maxDistance", "baseFee", "perKmRate"],
        [[0, 100, 1, 1]],
    )

    tiers = zones_repository.get_zone_tiers(file_path)

    assert fake.tables == ["delivery_zones"]
    assert len(tiers) == 1
    assert tiers[0].name == "Metro"
    assert tiers[0].max_distance == Decimal("8")


def test_empty_database_falls_back_to_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(zones_repository, "get_supabase_client", lambda: FakeSupabase([]))
    file_path = _write_workbook(
        tmp_path / "zones.xlsx",
        ["minDistance", "maxDistance", "baseFee", "perKmRate"],
        [[0, 100, 1, 1]],
    )

    tiers = zones_repository.get_zone_tiers(file_path)

    assert len(tiers) == 1
    assert tiers[0].name == "Zone 1"
    assert tiers[0].id == 1
