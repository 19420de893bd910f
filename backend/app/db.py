"""
Database client configuration.
Uses Supabase (PostgREST) with the service-role key; webhook writes are
server-to-server and bypass RLS.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings


@lru_cache(maxsize=1)
def get_supabase_admin() -> Client:
    """Return the process-wide admin client, created on first use."""
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)
