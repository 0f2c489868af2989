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
        logging.info("Supabase credentials not configured (missing URL or key); using in-memory offer store")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Example usage patterns:
#
# from .db.supabase import get_supabase_client
#
# # Select offers still open for booking
# result = get_supabase_client().table('pooling_offers') \
#     .select('*') \
#     .in_('status', ['active', 'pending']) \
#     .gt('available_seats', 0) \
#     .execute()
#
# # Attach a polyline to one offer
# result = get_supabase_client().table('pooling_offers') \
#     .update({'polyline': [{'lat': 19.07, 'lng': 72.87, 'index': 0}, ...]}) \
#     .eq('offer_id', 'PO...') \
#     .execute()
