"""
Course endpoints: series and episode choices for embedding Opencast media.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from api.deps import ClientScope, Settings, SupabaseClient
from opencast_bridge.config import OpencastConfigError
from opencast_bridge.repositories.series_mappings import SeriesMappingRepositoryError
from opencast_bridge.utils.course_choices import load_course_choices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"])


class CourseChoicesResponse(BaseModel):
    series: dict[str, str]
    episodes: dict[str, dict[str, str]]


@router.get("/{course_id}/choices", response_model=CourseChoicesResponse)
def get_course_choices(db: SupabaseClient, scope: ClientScope, settings: Settings, course_id: int) -> dict:
    """
    Series and episode choices for every series mapped to the course.
    """
    try:
        choices = load_course_choices(
            db,
            course_id,
            client_factory=scope.get_client,
            all_videos_label=settings.all_videos_label,
            error_policy=settings.aggregation_error_policy,
        )
    except SeriesMappingRepositoryError as exc:
        logger.error(f"Series mapping lookup failed for course {course_id}: {exc}")
        raise HTTPException(status_code=502, detail="Database error during listing series mappings") from exc
    except OpencastConfigError as exc:
        logger.error(f"Course {course_id} maps a series to an unconfigured Opencast instance: {exc}")
        raise HTTPException(status_code=500, detail="Opencast instance configuration error") from exc
    return choices.to_dict()
