"""
Database client singletons.

The marketplace content (craftsman profiles, courses, products, media files)
and the behavior event log both live in Supabase; this module hands out the
shared client.
"""

from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from config.settings import get_settings
from core.errors import StoreUnavailableError


class SupabaseClientError(StoreUnavailableError):
    """Raised when Supabase client cannot be created."""
    pass


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Get the singleton Supabase client instance.

    Raises:
        SupabaseClientError: If client cannot be created
    """
    try:
        settings = get_settings()
        return create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        raise SupabaseClientError(f"Failed to create Supabase client: {e}") from e


def get_supabase_client_optional() -> Optional[Client]:
    """
    Get the Supabase client, returning None if it cannot be created.

    Useful for graceful degradation when Supabase is not configured.
    """
    try:
        return get_supabase_client()
    except SupabaseClientError:
        return None
