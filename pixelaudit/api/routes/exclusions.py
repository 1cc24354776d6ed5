"""Exclusion-area import validation."""

from __future__ import annotations

from fastapi import APIRouter, Request

from pixelaudit.api.routes.errors import to_http_exception
from pixelaudit.api.schemas.models import ExclusionsSchema
from pixelaudit.core.errors import AnalysisError
from pixelaudit.core.exclusion import MAX_EXCLUDED_AREAS, check_area_limit, parse_excluded_areas

router = APIRouter(prefix="/exclusions", tags=["exclusions"])


@router.post("/validate", response_model=ExclusionsSchema)
async def validate_exclusions(request: Request) -> ExclusionsSchema:
    """Validate an exclusion import and echo the normalized areas with ids.

    The body is the same JSON a user would import: an area, an array of areas,
    or ``{"excludedAreas": [...]}``.
    """

    body = await request.body()
    try:
        areas = parse_excluded_areas(body)
        check_area_limit(0, len(areas), MAX_EXCLUDED_AREAS)
    except AnalysisError as exc:
        raise to_http_exception(exc) from exc
    return ExclusionsSchema(
        excluded_areas=[
            {"id": i, "x": a.x, "y": a.y, "width": a.width, "height": a.height}
            for i, a in enumerate(areas, start=1)
        ]
    )
