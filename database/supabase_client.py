from typing import Optional

from supabase import create_client, Client
from config.settings import SUPABASE_URL, SUPABASE_KEY

_supabase: Optional[Client] = None


def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first use."""
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_KEY:
            raise RuntimeError(
                "Missing SUPABASE_URL or SUPABASE_SERVICE_KEY. "
                "Please set them before starting the application."
            )
        _supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
    return _supabase
