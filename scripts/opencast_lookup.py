#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from opencast_bridge.config import OpencastConfigError, get_settings
from opencast_bridge.db.supabase import create_supabase_client
from opencast_bridge.integrations.opencast.client import OpencastEpisode, OpencastSeries
from opencast_bridge.integrations.opencast.scope import OpencastClientScope
from opencast_bridge.integrations.opencast.transport import OpencastTransportError
from opencast_bridge.repositories.series_mappings import (
    SeriesMappingRepositoryError,
    assert_core_series_mappings_table_exists,
)
from opencast_bridge.utils.course_choices import load_course_choices


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="opencast_lookup",
        description="Look up Opencast series and episodes through the bridge.",
    )
    parser.add_argument("--instance", type=int, default=None, help="Opencast instance id (default: configured default).")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_series = sub.add_parser("series", help="Show one series.")
    p_series.add_argument("series_id")

    p_episode = sub.add_parser("episode", help="Show one episode.")
    p_episode.add_argument("episode_id")
    p_episode.add_argument("--series", default=None, help="Only accept the episode if it belongs to this series.")

    p_episodes = sub.add_parser("episodes", help="List the episodes of a series.")
    p_episodes.add_argument("series_id")

    p_identify = sub.add_parser("identify", help="Tell whether an id is an episode or a series.")
    p_identify.add_argument("opencast_id")

    p_course = sub.add_parser("course-choices", help="Series/episode choices for a course.")
    p_course.add_argument("course_id", type=int)
    p_course.add_argument("--skip-errors", action="store_true", help="Skip series whose Opencast requests fail.")
    p_course.add_argument("--workers", type=int, default=1, help="Fetch series concurrently with this many workers.")

    return parser.parse_args(argv)


def _series_json(series: OpencastSeries) -> dict[str, Any]:
    return {"identifier": series.identifier, "title": series.title}


def _episode_json(episode: OpencastEpisode) -> dict[str, Any]:
    return {
        "identifier": episode.identifier,
        "title": episode.title,
        "is_part_of": episode.is_part_of,
        "start": episode.start,
    }


def _run(args: argparse.Namespace, scope: OpencastClientScope) -> tuple[Any, bool]:
    if args.command == "course-choices":
        settings = scope.settings
        db = create_supabase_client()
        assert_core_series_mappings_table_exists(db)
        if args.workers > 1:
            # One client per mapping; worker threads must not share a session.
            factory = lambda instance_id: scope.get_client(instance_id, force_new=True)  # noqa: E731
        else:
            factory = scope.get_client
        choices = load_course_choices(
            db,
            args.course_id,
            client_factory=factory,
            all_videos_label=settings.all_videos_label,
            error_policy="skip" if args.skip_errors else settings.aggregation_error_policy,
            max_workers=args.workers,
        )
        return choices.to_dict(), True

    client = scope.get_client(args.instance)
    if args.command == "series":
        series = client.get_series(args.series_id)
        return (_series_json(series) if series else None), series is not None
    if args.command == "episode":
        episode = client.get_episode(args.episode_id, ensure_series=args.series)
        return (_episode_json(episode) if episode else None), episode is not None
    if args.command == "episodes":
        episodes = client.list_episodes_in_series(args.series_id)
        if episodes is None:
            return None, False
        return [_episode_json(e) for e in episodes], True
    if args.command == "identify":
        id_type = client.classify_identifier(args.opencast_id)
        return {"id": args.opencast_id, "type": id_type.name.lower()}, True
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        with OpencastClientScope(get_settings()) as scope:
            payload, found = _run(args, scope)
    except (OpencastConfigError, OpencastTransportError, SeriesMappingRepositoryError) as exc:
        print(f"[opencast_lookup] {exc}", file=sys.stderr)
        return 2

    if not found:
        print("[opencast_lookup] not found", file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
