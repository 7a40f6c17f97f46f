"""Supabase client for Python backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.info("Supabase credentials not configured, using in-process storage")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by this service:
#
# delivery_zones(id, name, min_distance, max_distance, base_fee, per_km_rate, is_active)
# deliveries(id, order_id, customer_id, delivery_partner_id, status, pickup_address,
#            delivery_address, estimated_distance, estimated_time, delivery_fee,
#            special_instructions, created_at, assigned_at, picked_up_at,
#            delivered_at, cancelled_at, updated_at)
# delivery_status_history(id, delivery_id, from_status, to_status, changed_at, actor_id)
# notifications(id, user_id, title, message, type, order_id, is_read, created_at)
