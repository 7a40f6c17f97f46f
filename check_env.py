#!/usr/bin/env python3
"""Helper script to check the .env file and the settings the delivery API will load."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# Supabase Configuration (optional - deliveries are kept in memory without it)
DLV_SUPABASE_URL=https://your-project-id.supabase.co
DLV_SUPABASE_KEY=your-service-role-key-here

# API Configuration
DLV_API_PREFIX=/api
# DLV_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Delivery zone schedule (.xlsx or .json); built-in tiers are used when missing
DLV_ZONES_FILE=./data/delivery_zones.xlsx
DLV_DEFAULT_DELIVERY_FEE=100.00

# OSRM Routing (optional - great-circle distance is used when empty)
DLV_OSRM_BASE_URL=
"""


def _mask(value: str, keep: int = 12) -> str:
    if len(value) <= keep * 2:
        return value
    return value[:keep] + "..." + value[-6:]


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Delivery API Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        with open(env_file, "w", encoding="utf-8") as f:
            f.write(ENV_TEMPLATE)
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Edit it and re-run this script.")
        return

    print(f"✅ Found .env file at: {env_file}")
    print()

    for name in ("DLV_SUPABASE_URL", "DLV_SUPABASE_KEY", "DLV_OSRM_BASE_URL"):
        value = os.getenv(name)
        if value:
            print(f"✅ {name} (from environment): {_mask(value)}")
        else:
            print(f"ℹ️  {name} not set in environment (may still come from .env)")
    print()

    print("Testing config loading...")
    try:
        sys.path.insert(0, str(project_root / "src"))
        from delivery_engine.config import settings
        from delivery_engine.data.zones_repository import get_zone_tiers
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure dependencies are installed: pip install -e .")
        return

    print(f"   Supabase configured: {bool(settings.supabase_url and settings.supabase_key)}")
    print(f"   OSRM configured:     {bool(settings.osrm_base_url)}")
    print(f"   Zones file:          {settings.zones_file} (exists={settings.zones_file.exists()})")
    print()
    print("Active delivery zone tiers:")
    for tier in get_zone_tiers():
        flag = "" if tier.is_active else " (inactive)"
        print(
            f"   {tier.name}: {tier.min_distance}-{tier.max_distance} km, "
            f"base {tier.base_fee} + {tier.per_km_rate}/km{flag}"
        )


if __name__ == "__main__":
    main()
