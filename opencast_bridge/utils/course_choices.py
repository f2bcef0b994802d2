"""
Build the series/episode choice lists shown when embedding Opencast media in a course.

Every series mapped to a course contributes one entry to `series_choices` and
one nested mapping to `episode_choices`, both keyed by
`"{series identifier}_{instance id}"`. Each nested mapping starts with the
`allvideos` sentinel, followed by the series' episodes in Opencast's order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from supabase import Client

from opencast_bridge.config import DEFAULT_ALL_VIDEOS_LABEL, OpencastConfigError
from opencast_bridge.integrations.opencast.client import OpencastCatalogClient
from opencast_bridge.integrations.opencast.transport import OpencastTransportError
from opencast_bridge.models.series_mappings import SeriesMapping
from opencast_bridge.repositories.series_mappings import fetch_series_mappings_for_course

logger = logging.getLogger(__name__)

ALL_VIDEOS_KEY = "allvideos"

CatalogClientFactory = Callable[[int], OpencastCatalogClient]


@dataclass
class CourseChoices:
    series_choices: dict[str, str] = field(default_factory=dict)
    episode_choices: dict[str, dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "series": dict(self.series_choices),
            "episodes": {key: dict(value) for key, value in self.episode_choices.items()},
        }


@dataclass(frozen=True)
class _SeriesEntry:
    key: str
    title: str
    episodes: dict[str, str]


def series_choice_key(series_identifier: str, instance_id: int) -> str:
    return f"{series_identifier}_{instance_id}"


def _collect_series_entry(
    mapping: SeriesMapping,
    client: OpencastCatalogClient,
    all_videos_label: str,
) -> _SeriesEntry | None:
    series = client.get_series(mapping.series)
    if series is None:
        logger.info(
            f"Series {mapping.series} on instance {mapping.ocinstanceid} not found; "
            f"leaving it out of course {mapping.course_id}"
        )
        return None

    episodes: dict[str, str] = {ALL_VIDEOS_KEY: all_videos_label}
    for episode in client.list_episodes_in_series(series.identifier) or []:
        episodes[episode.identifier] = episode.title

    return _SeriesEntry(
        key=series_choice_key(series.identifier, mapping.ocinstanceid),
        title=series.title,
        episodes=episodes,
    )


def _skip_or_raise(mapping: SeriesMapping, exc: Exception, error_policy: str) -> None:
    if error_policy != "skip":
        raise exc
    logger.warning(
        f"Skipping series {mapping.series} on instance {mapping.ocinstanceid} "
        f"for course {mapping.course_id}: {exc}"
    )


def _resolve_client(
    mapping: SeriesMapping,
    client_factory: CatalogClientFactory,
    error_policy: str,
) -> OpencastCatalogClient | None:
    try:
        return client_factory(mapping.ocinstanceid)
    except OpencastConfigError as exc:
        _skip_or_raise(mapping, exc, error_policy)
        return None


def _guarded(
    mapping: SeriesMapping,
    client: OpencastCatalogClient,
    all_videos_label: str,
    error_policy: str,
) -> _SeriesEntry | None:
    try:
        return _collect_series_entry(mapping, client, all_videos_label)
    except OpencastTransportError as exc:
        _skip_or_raise(mapping, exc, error_policy)
        return None


def build_course_choices(
    mappings: Iterable[SeriesMapping],
    *,
    client_factory: CatalogClientFactory,
    all_videos_label: str = DEFAULT_ALL_VIDEOS_LABEL,
    error_policy: str = "abort",
    max_workers: int = 1,
) -> CourseChoices:
    """
    Aggregate series and episode choices for a set of series mappings.

    Series that cannot be fetched are left out. Transport failures and mappings
    pointing at an unconfigured instance either abort the whole aggregation
    (`error_policy="abort"`) or drop only the affected mapping (`"skip"`).

    With `max_workers > 1` series are fetched concurrently. `client_factory` is
    still only called from the calling thread, once per mapping, before any
    work is submitted; the clients it returns are then used from worker
    threads, so it must not hand the same client to two mappings. Output order
    always follows the input order.
    """

    if error_policy not in ("abort", "skip"):
        raise ValueError(f"Unknown aggregation error policy: {error_policy!r}")

    ordered = list(mappings)
    entries: list[_SeriesEntry | None] = []
    if max_workers > 1 and len(ordered) > 1:
        resolved = [(mapping, _resolve_client(mapping, client_factory, error_policy)) for mapping in ordered]
        with ThreadPoolExecutor(max_workers=min(max_workers, len(ordered))) as pool:
            futures = [
                pool.submit(_guarded, mapping, client, all_videos_label, error_policy)
                for mapping, client in resolved
                if client is not None
            ]
            try:
                entries = [future.result() for future in futures]
            except OpencastTransportError:
                pool.shutdown(wait=False, cancel_futures=True)
                raise
    else:
        for mapping in ordered:
            client = _resolve_client(mapping, client_factory, error_policy)
            if client is not None:
                entries.append(_guarded(mapping, client, all_videos_label, error_policy))

    choices = CourseChoices()
    for entry in entries:
        if entry is None:
            continue
        choices.series_choices[entry.key] = entry.title
        choices.episode_choices[entry.key] = entry.episodes
    return choices


def load_course_choices(
    db: Client,
    course_id: int,
    *,
    client_factory: CatalogClientFactory,
    all_videos_label: str = DEFAULT_ALL_VIDEOS_LABEL,
    error_policy: str = "abort",
    max_workers: int = 1,
) -> CourseChoices:
    mappings = fetch_series_mappings_for_course(db, course_id=course_id)
    return build_course_choices(
        mappings,
        client_factory=client_factory,
        all_videos_label=all_videos_label,
        error_policy=error_policy,
        max_workers=max_workers,
    )
