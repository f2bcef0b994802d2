from __future__ import annotations

from typing import Any

from supabase import Client

from opencast_bridge.models.series_mappings import SeriesMapping

SERIES_MAPPING_SELECT_FIELDS = "id,course_id,ocinstanceid,series,is_default"


class SeriesMappingRepositoryError(RuntimeError):
    pass


def _is_missing_relation(message: str) -> bool:
    msg = (message or "").casefold()
    return (
        "42p01" in msg  # undefined_table
        or "pgrst205" in msg  # postgrest: relation not found in schema cache
        or ("relation" in msg and "does not exist" in msg)
        or ("schema cache" in msg and "series_mappings" in msg)
        or ("could not find" in msg and "relation" in msg)
    )


def _is_schema_not_exposed(message: str) -> bool:
    msg = (message or "").casefold()
    return (
        "pgrst106" in msg  # postgrest: invalid schema
        or ("invalid schema" in msg and "core" in msg)
        or ("schemas are exposed" in msg and "public" in msg)
    )


def _help_message() -> str:
    return (
        "Database table `core.series_mappings` is missing. "
        "Run `supabase db push` to apply migrations, then retry."
    )


def _schema_help_message() -> str:
    return (
        "Supabase API does not expose schema `core`, so `core.series_mappings` cannot be read. "
        "Add `core` to `supabase/config.toml` under `[api].schemas` and run `supabase config push` "
        "(or enable `core` in Supabase Dashboard -> Settings -> API -> Exposed schemas)."
    )


def _describe_error(error: Any) -> str:
    parts = [
        str(getattr(error, "code", "") or ""),
        str(getattr(error, "message", "") or ""),
        str(getattr(error, "details", "") or ""),
        str(getattr(error, "hint", "") or ""),
        str(error),
    ]
    return " ".join([p for p in parts if p]).strip()


def assert_core_series_mappings_table_exists(db: Client) -> None:
    """
    Fail fast with a clear error if `core.series_mappings` is missing in Supabase.
    """

    try:
        response = db.schema("core").table("series_mappings").select("id").limit(1).execute()
    except Exception as exc:
        if _is_schema_not_exposed(str(exc)):
            raise SeriesMappingRepositoryError(_schema_help_message()) from exc
        if _is_missing_relation(str(exc)):
            raise SeriesMappingRepositoryError(_help_message()) from exc
        raise SeriesMappingRepositoryError(f"Supabase error during core.series_mappings preflight: {exc}") from exc

    error = getattr(response, "error", None)
    if not error:
        return

    combined = _describe_error(error)
    if _is_schema_not_exposed(combined):
        raise SeriesMappingRepositoryError(_schema_help_message())
    if _is_missing_relation(combined):
        raise SeriesMappingRepositoryError(_help_message())
    raise SeriesMappingRepositoryError(f"Supabase error during core.series_mappings preflight: {combined}")


def fetch_series_mappings_for_course(db: Client, *, course_id: int) -> list[SeriesMapping]:
    """
    Return the series mappings of a course in storage order (by `id`).
    """

    response = (
        db.schema("core")
        .table("series_mappings")
        .select(SERIES_MAPPING_SELECT_FIELDS)
        .eq("course_id", int(course_id))
        .order("id")
        .execute()
    )
    if hasattr(response, "error") and response.error:
        raise SeriesMappingRepositoryError(f"Supabase error listing series mappings: {response.error}")
    data = response.data or []
    if not isinstance(data, list):
        return []

    mappings: list[SeriesMapping] = []
    for row in data:
        if not isinstance(row, dict):
            continue
        try:
            mapping = SeriesMapping.from_row(row)
        except (KeyError, TypeError, ValueError) as exc:
            raise SeriesMappingRepositoryError(f"Malformed series mapping row {row!r}: {exc}") from exc
        if mapping.series:
            mappings.append(mapping)
    return mappings
