"""Per-frame analysis pipelines.

`ColorPipeline` is stateless across frames. `MotionPipeline` threads the previous
frame's edge points from one call to the next, so frames must be fed strictly in
ascending order and a single instance must not be shared between runs.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from pixelaudit.core.analytics.color import dominant_color
from pixelaudit.core.analytics.edges import sobel
from pixelaudit.core.analytics.grayscale import to_grayscale
from pixelaudit.core.analytics.motion import compare_points, is_motion
from pixelaudit.core.types import (
    DominantColorResult,
    ExcludedArea,
    Frame,
    MotionFrameAnalysisResult,
    Point,
)


class ColorPipeline:
    """Dominant-color analysis of single frames."""

    def __init__(
        self,
        threshold: float = 30.0,
        excluded_areas: Sequence[ExcludedArea] = (),
        with_visualization: bool = True,
    ) -> None:
        self.threshold = float(threshold)
        self.excluded_areas = tuple(excluded_areas)
        self.with_visualization = with_visualization

    def process(self, frame: Frame) -> DominantColorResult | None:
        return dominant_color(
            frame,
            self.threshold,
            self.excluded_areas,
            with_visualization=self.with_visualization,
        )


class MotionPipeline:
    """Edge extraction plus comparison against the previous frame.

    The first processed frame is compared against an empty previous set.
    """

    def __init__(
        self,
        edge_threshold: float = 70.0,
        comparison_points: int = 1000,
        tolerance: float = 0.1,
        excluded_areas: Sequence[ExcludedArea] = (),
        rng: np.random.Generator | None = None,
    ) -> None:
        self.edge_threshold = float(edge_threshold)
        self.comparison_points = int(comparison_points)
        self.tolerance = float(tolerance)
        self.excluded_areas = tuple(excluded_areas)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.previous_edge_points: list[Point] = []

    def edge_points(self, frame: Frame) -> list[Point]:
        gray = to_grayscale(frame)
        return sobel(gray, self.edge_threshold, self.excluded_areas)

    def process(self, frame: Frame, frame_index: int, timestamp: float) -> MotionFrameAnalysisResult:
        points = self.edge_points(frame)
        cmp = compare_points(self.previous_edge_points, points, self.comparison_points, self.rng)
        self.previous_edge_points = points
        return MotionFrameAnalysisResult(
            frame=int(frame_index),
            time=float(timestamp),
            changed_percentage=cmp.changed_percentage,
            motion_detected=is_motion(cmp.changed_percentage, self.tolerance),
            low_confidence=cmp.low_confidence,
            stable_points=cmp.stable_points,
            moved_points=cmp.moved_points,
        )
