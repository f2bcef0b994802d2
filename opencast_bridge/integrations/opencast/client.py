"""
Opencast external API catalog client.

Wraps the handful of read-only calls the course pages need: series details,
episode details, the episodes of a series, and telling whether an opaque id
names an episode or a series.

Absence is a normal outcome here: any status other than 200, or a body that
does not decode to a JSON value of the expected shape, is returned as `None`.
Only connection-level failures (`OpencastTransportError`) propagate.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

from opencast_bridge.integrations.opencast.transport import OpencastResponse, OpencastTransport

SeriesId = str
EpisodeId = str


class OpencastIdType(IntEnum):
    UNDEFINED = 0
    EPISODE = 1
    SERIES = 2


@dataclass(frozen=True)
class OpencastSeries:
    identifier: SeriesId
    title: str
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class OpencastEpisode:
    identifier: EpisodeId
    title: str
    is_part_of: SeriesId | None = None
    start: str | None = None  # ISO-8601 timestamp when available
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


class OpencastCatalogClient(Protocol):
    """Port used by the rest of the system to read the Opencast catalog."""

    def get_series(self, series_id: SeriesId) -> OpencastSeries | None: ...

    def get_episode(self, episode_id: EpisodeId, ensure_series: SeriesId | None = None) -> OpencastEpisode | None: ...

    def list_episodes_in_series(self, series_id: SeriesId) -> list[OpencastEpisode] | None: ...

    def classify_identifier(self, opencast_id: str) -> OpencastIdType: ...


def series_resource(series_id: SeriesId) -> str:
    return f"/api/series/{series_id}"


def episode_resource(episode_id: EpisodeId) -> str:
    return f"/api/events/{episode_id}?sign=true&withpublications=true"


def episodes_in_series_resource(series_id: SeriesId) -> str:
    return (
        f"/api/events?filter=is_part_of:{series_id}"
        "&withpublications=true&sort=start_date:DESC,title:ASC&sign=true"
    )


def _decode_ok_body(response: OpencastResponse) -> Any | None:
    if response.status_code != 200:
        return None
    try:
        return json.loads(response.body)
    except (ValueError, UnicodeDecodeError):
        return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _normalize_series(payload: Any, fallback_id: SeriesId) -> OpencastSeries | None:
    if not isinstance(payload, Mapping):
        return None
    return OpencastSeries(
        identifier=_text(payload.get("identifier")) or fallback_id,
        title=_text(payload.get("title")) or "",
        raw=payload,
    )


def _normalize_episode(payload: Any, fallback_id: EpisodeId | None = None) -> OpencastEpisode | None:
    if not isinstance(payload, Mapping):
        return None
    identifier = _text(payload.get("identifier")) or fallback_id
    if not identifier:
        return None
    return OpencastEpisode(
        identifier=identifier,
        title=_text(payload.get("title")) or "",
        is_part_of=_text(payload.get("is_part_of")),
        start=_text(payload.get("start")),
        raw=payload,
    )


def _normalize_episode_list(payload: Any) -> list[OpencastEpisode] | None:
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        return None
    episodes: list[OpencastEpisode] = []
    for item in payload:
        episode = _normalize_episode(item)
        if episode is not None:
            episodes.append(episode)
    return episodes


class HttpOpencastCatalogClient(OpencastCatalogClient):
    """Catalog client bound to a single Opencast instance."""

    def __init__(self, transport: OpencastTransport) -> None:
        self._transport = transport

    @property
    def instance_id(self) -> int:
        return self._transport.instance.id

    def get_series(self, series_id: SeriesId) -> OpencastSeries | None:
        payload = _decode_ok_body(self._transport.get(series_resource(series_id)))
        return _normalize_series(payload, series_id)

    def get_episode(self, episode_id: EpisodeId, ensure_series: SeriesId | None = None) -> OpencastEpisode | None:
        """
        Fetch one episode.

        When `ensure_series` is given, an episode that is not part of that
        series is reported as not found.
        """

        payload = _decode_ok_body(self._transport.get(episode_resource(episode_id)))
        episode = _normalize_episode(payload, episode_id)
        if episode is None:
            return None
        if ensure_series and episode.is_part_of != ensure_series:
            return None
        return episode

    def list_episodes_in_series(self, series_id: SeriesId) -> list[OpencastEpisode] | None:
        """
        List the episodes of a series, newest first, then by title.

        The order is the one delivered by Opencast. An empty list means the
        series has no episodes; `None` means the request did not succeed.
        """

        payload = _decode_ok_body(self._transport.get(episodes_in_series_resource(series_id)))
        return _normalize_episode_list(payload)

    def classify_identifier(self, opencast_id: str) -> OpencastIdType:
        if self._transport.get(f"/api/events/{opencast_id}").status_code == 200:
            return OpencastIdType.EPISODE
        if self._transport.get(f"/api/series/{opencast_id}").status_code == 200:
            return OpencastIdType.SERIES
        return OpencastIdType.UNDEFINED

    def close(self) -> None:
        self._transport.close()
