from __future__ import annotations

import os
from functools import lru_cache

from supabase import Client, create_client


@lru_cache
def get_supabase_url() -> str:
    url = (os.getenv("SUPABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("SUPABASE_URL environment variable is not set")
    return url


@lru_cache
def get_supabase_key() -> str:
    # Series mappings are read-only here; the anon key is enough when RLS allows it.
    key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or "").strip()
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) environment variable is not set")
    return key


def create_supabase_client(*, url: str | None = None, key: str | None = None) -> Client:
    """
    Create a Supabase client for reading course series mappings.

    Intended for scripts; the API builds its client through `api.deps`.
    """

    return create_client(url or get_supabase_url(), key or get_supabase_key())
