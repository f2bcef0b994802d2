"""
Read-only browse endpoints for Opencast series and episodes.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.deps import ClientScope, require_client, require_found
from opencast_bridge.integrations.opencast.client import OpencastEpisode, OpencastSeries

router = APIRouter(prefix="/instances/{instance_id}", tags=["catalog"])


# --- Pydantic models ---

class Series(BaseModel):
    identifier: str
    title: str
    raw: dict[str, Any]


class Episode(BaseModel):
    identifier: str
    title: str
    is_part_of: str | None
    start: str | None
    raw: dict[str, Any]


class Identification(BaseModel):
    id: str
    type: str


def _series_dict(series: OpencastSeries) -> dict:
    return {"identifier": series.identifier, "title": series.title, "raw": dict(series.raw)}


def _episode_dict(episode: OpencastEpisode) -> dict:
    return {
        "identifier": episode.identifier,
        "title": episode.title,
        "is_part_of": episode.is_part_of,
        "start": episode.start,
        "raw": dict(episode.raw),
    }


# --- Endpoints ---

@router.get("/series/{series_id}", response_model=Series)
def get_series(scope: ClientScope, instance_id: int, series_id: str) -> dict:
    """Get a series by its Opencast identifier."""
    client = require_client(scope, instance_id)
    series = require_found(client.get_series(series_id), "Series")
    return _series_dict(series)


@router.get("/series/{series_id}/episodes", response_model=list[Episode])
def list_series_episodes(scope: ClientScope, instance_id: int, series_id: str) -> list[dict]:
    """List the episodes of a series, newest first."""
    client = require_client(scope, instance_id)
    episodes = require_found(client.list_episodes_in_series(series_id), "Series")
    return [_episode_dict(e) for e in episodes]


@router.get("/episodes/{episode_id}", response_model=Episode)
def get_episode(
    scope: ClientScope,
    instance_id: int,
    episode_id: str,
    series: str | None = Query(default=None, description="Only return the episode if it belongs to this series."),
) -> dict:
    """Get an episode, optionally checking the series it belongs to."""
    client = require_client(scope, instance_id)
    episode = require_found(client.get_episode(episode_id, ensure_series=series), "Episode")
    return _episode_dict(episode)


@router.get("/identify/{opencast_id}", response_model=Identification)
def identify(scope: ClientScope, instance_id: int, opencast_id: str) -> dict:
    """Tell whether an id names an episode, a series, or nothing."""
    client = require_client(scope, instance_id)
    id_type = client.classify_identifier(opencast_id)
    return {"id": opencast_id, "type": id_type.name.lower()}
