"""
Dependency injection for the Supabase client, settings and Opencast clients.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException
from supabase import Client, create_client

from opencast_bridge.config import OpencastConfigError, OpencastSettings, get_settings
from opencast_bridge.integrations.opencast.client import HttpOpencastCatalogClient
from opencast_bridge.integrations.opencast.scope import OpencastClientScope
from opencast_bridge.utils.env import load_env

load_env()

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_url() -> str:
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError("SUPABASE_URL environment variable is not set")
    return url


@lru_cache
def get_supabase_anon_key() -> str:
    key = os.getenv("SUPABASE_ANON_KEY")
    if not key:
        raise RuntimeError("SUPABASE_ANON_KEY environment variable is not set")
    return key


def get_supabase_client() -> Client:
    """
    Returns a Supabase client using the anon key (series mappings are read-only).
    """
    return create_client(get_supabase_url(), get_supabase_anon_key())


def get_opencast_settings() -> OpencastSettings:
    return get_settings()


def get_client_scope(settings: Annotated[OpencastSettings, Depends(get_opencast_settings)]) -> Iterator[OpencastClientScope]:
    """
    One client scope per request; every client it built is closed afterwards.
    """
    scope = OpencastClientScope(settings)
    try:
        yield scope
    finally:
        scope.close()


# Type aliases for dependency injection
SupabaseClient = Annotated[Client, Depends(get_supabase_client)]
Settings = Annotated[OpencastSettings, Depends(get_opencast_settings)]
ClientScope = Annotated[OpencastClientScope, Depends(get_client_scope)]


def require_client(scope: OpencastClientScope, instance_id: int) -> HttpOpencastCatalogClient:
    """
    Resolve the catalog client for an instance, or 404 when it is not configured.
    """
    try:
        return scope.get_client(instance_id)
    except OpencastConfigError as exc:
        logger.info(f"Rejected request for unconfigured Opencast instance {instance_id}: {exc}")
        raise HTTPException(status_code=404, detail=f"Opencast instance {instance_id} not found") from exc


def require_found(value, entity_name: str = "Resource"):
    """
    Turn a not-found (`None`) catalog result into a 404.
    """
    if value is None:
        raise HTTPException(status_code=404, detail=f"{entity_name} not found")
    return value
