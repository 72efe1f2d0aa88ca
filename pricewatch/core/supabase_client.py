# pricewatch/core/supabase_client.py
from functools import lru_cache
from supabase import create_client, Client

from pricewatch.core.config import get_settings

settings = get_settings()


@lru_cache
def supabase_public() -> Client:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - password sign-in / sign-up for the client session layer
      - reading and creating the signed-in user's own profile row

    After sign-in the client sends the user's access token, so profile
    queries run under that user's RLS policies.
    """
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
