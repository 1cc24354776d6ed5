"""JSON-ready views of analysis results.

Pixel buffers and point arrays never leave the process: the motion export keeps
only the per-frame verdict, the color export only the dominant color.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from pixelaudit.core.analytics.color import is_uniform, rgb_to_hex
from pixelaudit.core.types import FrameAnalysisResult, MotionFrameAnalysisResult


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``MM:SS.ss``."""

    seconds = max(0.0, float(seconds))
    minutes = int(math.floor(seconds / 60.0))
    rest = seconds - minutes * 60
    return f"{minutes:02d}:{rest:05.2f}"


def motion_result_to_export(result: MotionFrameAnalysisResult) -> dict[str, Any]:
    return {
        "frame": int(result.frame),
        "time": float(result.time),
        "changedPercentage": float(result.changed_percentage),
        "motionDetected": bool(result.motion_detected),
        "lowConfidence": bool(result.low_confidence),
    }


def motion_results_to_export(results: Iterable[MotionFrameAnalysisResult]) -> list[dict[str, Any]]:
    return [motion_result_to_export(r) for r in results]


def color_result_to_export(
    result: FrameAnalysisResult, minimum_coverage: float | None = None
) -> dict[str, Any]:
    color = result.dominant_color
    out: dict[str, Any] = {
        "time": None if result.time is None else float(result.time),
        "dominantColor": {"r": color.r, "g": color.g, "b": color.b},
        "hex": rgb_to_hex(color),
        "percentage": float(result.percentage),
    }
    if result.time is not None:
        out["timestamp"] = format_timestamp(result.time)
    verdict = is_uniform(result.percentage, minimum_coverage)
    if verdict is not None:
        out["uniform"] = verdict
    return out


def color_results_to_export(
    results: Iterable[FrameAnalysisResult], minimum_coverage: float | None = None
) -> list[dict[str, Any]]:
    return [color_result_to_export(r, minimum_coverage) for r in results]
