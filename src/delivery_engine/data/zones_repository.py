"""Delivery zone tier loader with database-first approach, falling back to a config file."""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import DeliveryZoneTier

DEFAULT_ZONE_TIERS: tuple[DeliveryZoneTier, ...] = (
    DeliveryZoneTier(1, "Inner City", Decimal("0"), Decimal("5"), Decimal("30.00"), Decimal("5.00")),
    DeliveryZoneTier(2, "Suburban", Decimal("5.01"), Decimal("15"), Decimal("50.00"), Decimal("8.00")),
    DeliveryZoneTier(3, "Rural", Decimal("15.01"), Decimal("30"), Decimal("80.00"), Decimal("12.00")),
    DeliveryZoneTier(4, "Extended Rural", Decimal("30.01"), Decimal("100"), Decimal("120.00"), Decimal("15.00")),
)

REQUIRED_COLUMNS = {"min_distance", "max_distance", "base_fee", "per_km_rate"}

# Accepted header spellings, normalized to snake_case field names.
_HEADER_ALIASES = {
    "mindistance": "min_distance",
    "maxdistance": "max_distance",
    "basefee": "base_fee",
    "perkmrate": "per_km_rate",
    "isactive": "is_active",
}


def _normalize_header(name: Any) -> str:
    key = str(name or "").strip()
    compact = key.replace("_", "").replace(" ", "").lower()
    return _HEADER_ALIASES.get(compact, key.lower())


def _parse_bool(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "active"}


def tier_from_record(record: Mapping[str, Any], index: int = 0) -> DeliveryZoneTier:
    """Build a tier from a row mapping. Raises ValueError for malformed rows."""
    row = {_normalize_header(key): value for key, value in record.items()}
    missing = REQUIRED_COLUMNS - set(row)
    if missing:
        raise ValueError(f"missing columns: {', '.join(sorted(missing))}")
    try:
        tier = DeliveryZoneTier(
            id=int(row.get("id") or index + 1),
            name=str(row.get("name") or f"Zone {index + 1}"),
            min_distance=Decimal(str(row["min_distance"])),
            max_distance=Decimal(str(row["max_distance"])),
            base_fee=Decimal(str(row["base_fee"])),
            per_km_rate=Decimal(str(row["per_km_rate"])),
            is_active=_parse_bool(row.get("is_active")),
        )
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"invalid numeric value: {exc}") from exc
    if tier.min_distance > tier.max_distance:
        raise ValueError(f"min_distance {tier.min_distance} exceeds max_distance {tier.max_distance}")
    return tier


def _build_tiers(records: Iterable[Mapping[str, Any]], source: str) -> tuple[DeliveryZoneTier, ...]:
    tiers: list[DeliveryZoneTier] = []
    for index, record in enumerate(records):
        try:
            tiers.append(tier_from_record(record, index))
        except ValueError as e:
            logging.warning(f"Skipping invalid delivery zone row {index + 1} from {source}: {e}")
    return tuple(tiers)


def _load_zones_from_database() -> tuple[DeliveryZoneTier, ...] | None:
    """Load tiers from Supabase. Returns None if database not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table("delivery_zones").select("*").order("min_distance").execute()
    except Exception as e:
        logging.debug(f"Delivery zone query failed, falling back to file: {e}")
        return None
    if not response.data:
        return None
    return _build_tiers(response.data, "database") or None


def _load_zones_from_file(source: Path | None = None) -> tuple[DeliveryZoneTier, ...] | None:
    """Load tiers from an .xlsx workbook or a .json list of records."""
    path = source or settings.zones_file
    if not path.exists():
        return None

    if path.suffix.lower() == ".json":
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if isinstance(payload, dict):
            payload = payload.get("zones", [])
        if not isinstance(payload, list):
            raise ValueError(f"Delivery zone file '{path}' must contain a list of zones.")
        return _build_tiers(payload, path.name) or None

    wb = load_workbook(path, data_only=True, read_only=True)
    try:
        rows = wb.active.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Delivery zone workbook '{path}' is empty.")
        columns = [_normalize_header(name) for name in header]
        missing = REQUIRED_COLUMNS - set(columns)
        if missing:
            raise ValueError(f"Delivery zone workbook missing columns: {', '.join(sorted(missing))}")
        records = [
            dict(zip(columns, row))
            for row in rows
            if any(value not in (None, "") for value in row)
        ]
    finally:
        wb.close()
    return _build_tiers(records, path.name) or None


@lru_cache(maxsize=1)
def get_zone_tiers(source: Path | None = None) -> tuple[DeliveryZoneTier, ...]:
    """Get the tier schedule from the database first, then the config file, then defaults."""
    db_tiers = _load_zones_from_database()
    if db_tiers:
        return db_tiers

    file_tiers = _load_zones_from_file(source)
    if file_tiers:
        return file_tiers

    return DEFAULT_ZONE_TIERS


def get_active_zone_tiers(source: Path | None = None) -> tuple[DeliveryZoneTier, ...]:
    return tuple(tier for tier in get_zone_tiers(source) if tier.is_active)
