"""Upload-and-analyze endpoints.

The media file is the raw request body; its name and the analysis parameters
travel as query parameters. ``exclusions`` is a JSON-encoded array of areas.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Query, Request

from pixelaudit.api.routes.errors import to_http_exception
from pixelaudit.api.schemas.models import ColorAnalysisSchema, MotionAnalysisSchema
from pixelaudit.api.services.analysis import build_session, run_color_analysis, run_motion_analysis
from pixelaudit.core.errors import AnalysisError
from pixelaudit.core.exclusion import parse_excluded_areas
from pixelaudit.core.types import ExcludedArea

router = APIRouter(prefix="/analyze", tags=["analysis"])


def _parse_exclusions(raw: str | None) -> list[ExcludedArea]:
    if not raw:
        return []
    return parse_excluded_areas(raw)


@router.post("/color", response_model=ColorAnalysisSchema)
async def analyze_color(
    request: Request,
    filename: str = Query(..., min_length=1),
    color_threshold: float | None = Query(None, ge=0.0, le=255.0),
    minimum_coverage: float | None = Query(None, ge=0.0, le=1.0),
    exclusions: str | None = None,
) -> ColorAnalysisSchema:
    """Dominant color of an image, or of every sampled frame of a short video."""

    data = await request.body()
    try:
        session = build_session(
            _parse_exclusions(exclusions),
            color_threshold=color_threshold,
            minimum_coverage=minimum_coverage,
        )
        payload = await asyncio.to_thread(
            run_color_analysis, session, data, filename, request.headers.get("content-type")
        )
    except AnalysisError as exc:
        raise to_http_exception(exc) from exc
    return ColorAnalysisSchema(**payload)


@router.post("/motion", response_model=MotionAnalysisSchema)
async def analyze_motion(
    request: Request,
    filename: str = Query(..., min_length=1),
    edge_threshold: float | None = Query(None, ge=0.0, le=255.0),
    comparison_points: int | None = Query(None, ge=50, le=1000),
    tolerance: float | None = Query(None, ge=0.0, le=1.0),
    seed: int | None = None,
    exclusions: str | None = None,
) -> MotionAnalysisSchema:
    """Per-frame motion verdicts for a short video."""

    data = await request.body()
    try:
        session = build_session(
            _parse_exclusions(exclusions),
            edge_threshold=edge_threshold,
            comparison_points=comparison_points,
            tolerance=tolerance,
            random_seed=seed,
        )
        payload = await asyncio.to_thread(
            run_motion_analysis, session, data, filename, request.headers.get("content-type")
        )
    except AnalysisError as exc:
        raise to_http_exception(exc) from exc
    return MotionAnalysisSchema(**payload)
