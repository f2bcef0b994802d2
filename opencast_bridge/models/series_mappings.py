from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class SeriesMapping:
    """
    Link between a course and an Opencast series (maps to `core.series_mappings`).

    A course may reference many series; each series lives on exactly one instance.
    """

    course_id: int
    ocinstanceid: int
    series: str
    id: int | None = None
    is_default: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> SeriesMapping:
        raw_id = row.get("id")
        return cls(
            course_id=int(row["course_id"]),
            ocinstanceid=int(row["ocinstanceid"]),
            series=str(row.get("series") or "").strip(),
            id=int(raw_id) if raw_id is not None else None,
            is_default=bool(row.get("is_default")),
        )
