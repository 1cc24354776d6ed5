"""Blocking analysis jobs behind the HTTP routes.

Uploads arrive as raw bytes. Images are decoded in memory; videos are spooled to
a temporary file because OpenCV only seeks on files. Each call builds a fresh
`AnalysisSession`, so requests never share exclusion areas or motion state.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pixelaudit.api.services.state import get_settings
from pixelaudit.core.analytics.sampler import AnalysisSession
from pixelaudit.core.export import color_results_to_export
from pixelaudit.core.media import classify_media, decode_image_bytes
from pixelaudit.core.types import ExcludedArea
from pixelaudit.core.video_sources.base import OpenCVVideoSource

logger = logging.getLogger(__name__)


def _spool(data: bytes, filename: str | None) -> str:
    suffix = Path(filename or "").suffix or ".bin"
    fd, path = tempfile.mkstemp(prefix="pixelaudit-", suffix=suffix)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    logger.debug("Spooled %d upload bytes to %s", len(data), path)
    return path


def run_color_analysis(
    session: AnalysisSession,
    data: bytes,
    filename: str | None,
    content_type: str | None,
) -> dict[str, Any]:
    media_type = classify_media(filename, content_type)
    if media_type == "image":
        result = session.analyze_image(decode_image_bytes(data), with_visualization=False)
        return {
            "media_type": media_type,
            "results": color_results_to_export([result], session.minimum_coverage),
            "frames_sampled": 1,
        }

    path = _spool(data, filename)
    try:
        with OpenCVVideoSource(path) as source:
            results = session.analyze_color_video(source, with_visualization=False)
    finally:
        os.unlink(path)
    run = session.last_run
    return {
        "media_type": media_type,
        "results": color_results_to_export(results, session.minimum_coverage),
        "frames_sampled": run.total if run is not None else len(results),
    }


def run_motion_analysis(
    session: AnalysisSession,
    data: bytes,
    filename: str | None,
    content_type: str | None,
) -> dict[str, Any]:
    classify_media(filename, content_type, allowed=frozenset({"video"}))
    path = _spool(data, filename)
    try:
        with OpenCVVideoSource(path) as source:
            results = session.analyze_motion_video(source)
    finally:
        os.unlink(path)

    return {
        "results": [
            {
                "frame": r.frame,
                "time": r.time,
                "changed_percentage": r.changed_percentage,
                "motion_detected": r.motion_detected,
                "low_confidence": r.low_confidence,
                "stable_points": len(r.stable_points),
                "moved_points": len(r.moved_points),
            }
            for r in results
        ],
        "frames_sampled": len(results),
        "motion_frames": sum(1 for r in results if r.motion_detected),
    }


def build_session(excluded_areas: list[ExcludedArea], **params: Any) -> AnalysisSession:
    overrides = {k: v for k, v in params.items() if v is not None}
    return AnalysisSession.from_settings(get_settings(), excluded_areas=excluded_areas, **overrides)
