"""
Supabase Client

Provides the initialized Supabase client used by the entity store.
Routes always scope queries by the authenticated user's ID, so the
service role key is used (RLS is enforced in application code).
"""

from supabase import create_client, Client
from giftplanner.core.config import (
    SUPABASE_URL,
    SUPABASE_SERVICE_ROLE_KEY,
    validate_supabase_config,
)

# Module-level client — initialized lazily
_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Get the Supabase client using the service_role (admin) key.

    WARNING: This client BYPASSES Row Level Security. Every query made
    through it must be filtered by user_id (see EntityStore).
    """
    global _service_client
    if _service_client is None:
        validate_supabase_config()
        _service_client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
    return _service_client
