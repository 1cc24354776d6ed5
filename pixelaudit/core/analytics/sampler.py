"""Fixed-rate frame sampling and analysis sessions.

An `AnalysisSession` carries everything one user session needs (parameters,
exclusion areas, progress callback) and drives the per-frame pipelines over a
`FrameSource`. Frames are pulled and analyzed strictly one at a time in
ascending order; the motion path depends on it.

Each video run is tracked by an `AnalysisRun`:

    idle -> running(current/total) -> completed | failed | cancelled

The duration ceiling is checked once the run is running but before any frame
is read, so an over-long video fails the run without a single decode.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import numpy as np

from pixelaudit.core.analytics.adjustments import AdjustmentConfig, apply_adjustments
from pixelaudit.core.analytics.color import is_uniform
from pixelaudit.core.analytics.pipeline import ColorPipeline, MotionPipeline
from pixelaudit.core.config.settings import AnalysisSettings
from pixelaudit.core.errors import (
    AnalysisCancelled,
    AnalysisError,
    DecodeFailure,
    InvalidExclusionGeometry,
    NoAnalyzableContent,
)
from pixelaudit.core.exclusion import MAX_EXCLUDED_AREAS, check_area_limit, parse_excluded_areas
from pixelaudit.core.media import ensure_duration
from pixelaudit.core.services.recognition import RecognitionJob, TextRecognizer
from pixelaudit.core.types import (
    ExcludedArea,
    Frame,
    FrameAnalysisResult,
    MotionFrameAnalysisResult,
)
from pixelaudit.core.video_sources.base import FrameSource

logger = logging.getLogger(__name__)

ANALYSIS_FPS = 15

ProgressCallback = Callable[[int, int], None]


def sample_timestamps(duration: float, fps: float = ANALYSIS_FPS) -> list[tuple[int, float]]:
    """Return ``(frame_index, seconds)`` pairs for ``floor(duration * fps)`` samples."""

    total = int(math.floor(float(duration) * float(fps)))
    return [(i, i / float(fps)) for i in range(max(0, total))]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED})


@dataclass
class AnalysisRun:
    """Progress and outcome of one multi-frame analysis."""

    kind: str
    state: RunState = RunState.IDLE
    current: int = 0
    total: int = 0
    results: list[Any] = field(default_factory=list)
    error: AnalysisError | None = None

    @property
    def progress(self) -> tuple[int, int]:
        return self.current, self.total

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self, total: int) -> None:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"cannot start a run in state {self.state.value}")
        self.state = RunState.RUNNING
        self.total = int(total)
        self.current = 0

    def advance(self) -> None:
        self.current += 1

    def complete(self, results: list[Any]) -> None:
        self.results = results
        self.state = RunState.COMPLETED

    def fail(self, error: AnalysisError) -> None:
        # No partial results on failure.
        self.results = []
        self.error = error
        self.state = RunState.CANCELLED if isinstance(error, AnalysisCancelled) else RunState.FAILED


class AnalysisSession:
    """Explicit per-user analysis state.

    Parameters are plain attributes and may be changed between runs. Exclusion
    areas are capped at `MAX_EXCLUDED_AREAS` and get session-unique ids.
    """

    def __init__(
        self,
        *,
        color_threshold: float = 30.0,
        minimum_coverage: float | None = None,
        edge_threshold: float = 70.0,
        comparison_points: int = 1000,
        tolerance: float = 0.1,
        analysis_fps: float = ANALYSIS_FPS,
        max_video_duration: float = 15.0,
        random_seed: int | None = None,
        recognition_timeout: float = 5.0,
        excluded_areas: Sequence[ExcludedArea] = (),
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.color_threshold = float(color_threshold)
        self.minimum_coverage = minimum_coverage
        self.edge_threshold = float(edge_threshold)
        self.comparison_points = int(comparison_points)
        self.tolerance = float(tolerance)
        self.analysis_fps = float(analysis_fps)
        self.max_video_duration = float(max_video_duration)
        self.random_seed = random_seed
        self.recognition_timeout = float(recognition_timeout)
        self.on_progress = on_progress
        self.last_run: AnalysisRun | None = None
        self._areas: list[ExcludedArea] = []
        self._next_area_id = 1
        self._cancel = threading.Event()
        self._recognition: RecognitionJob | None = None
        self._add_areas(list(excluded_areas))

    @classmethod
    def from_settings(cls, settings: AnalysisSettings, **kwargs: Any) -> AnalysisSession:
        params: dict[str, Any] = {
            "color_threshold": settings.color_threshold,
            "minimum_coverage": settings.minimum_coverage,
            "edge_threshold": settings.edge_threshold,
            "comparison_points": settings.comparison_points,
            "tolerance": settings.tolerance,
            "analysis_fps": settings.analysis_fps,
            "max_video_duration": settings.max_video_duration,
            "random_seed": settings.random_seed,
            "recognition_timeout": settings.recognition_timeout,
        }
        params.update(kwargs)
        return cls(**params)

    # -- exclusion areas -------------------------------------------------------

    @property
    def excluded_areas(self) -> tuple[ExcludedArea, ...]:
        return tuple(self._areas)

    def _add_areas(self, areas: list[ExcludedArea]) -> list[ExcludedArea]:
        check_area_limit(len(self._areas), len(areas), MAX_EXCLUDED_AREAS)
        added = []
        for area in areas:
            added.append(replace(area, id=self._next_area_id))
            self._next_area_id += 1
        self._areas.extend(added)
        return added

    def add_excluded_area(self, x: float, y: float, width: float, height: float) -> ExcludedArea:
        return self._add_areas([ExcludedArea(x=x, y=y, width=width, height=height)])[0]

    def update_excluded_area(self, area_id: int, **fields: float) -> ExcludedArea:
        for i, area in enumerate(self._areas):
            if area.id == area_id:
                unknown = set(fields) - {"x", "y", "width", "height"}
                if unknown:
                    raise InvalidExclusionGeometry(f"Unknown area fields: {sorted(unknown)}")
                self._areas[i] = replace(area, **fields)
                return self._areas[i]
        raise KeyError(area_id)

    def remove_excluded_area(self, area_id: int) -> None:
        self._areas = [a for a in self._areas if a.id != area_id]

    def clear_excluded_areas(self) -> None:
        self._areas = []

    def import_excluded_areas(self, payload: str | bytes | list | dict) -> list[ExcludedArea]:
        """Append areas from JSON; nothing is added if any entry is invalid."""

        return self._add_areas(parse_excluded_areas(payload))

    # -- analysis --------------------------------------------------------------

    def cancel(self) -> None:
        """Request cancellation.

        Video runs stop before the next frame; an in-flight text recognition
        returns immediately. A request made between runs stops the next one.
        """

        self._cancel.set()
        job = self._recognition
        if job is not None:
            job.cancel()

    def is_uniform(self, result: FrameAnalysisResult) -> bool | None:
        return is_uniform(result.percentage, self.minimum_coverage)

    def color_pipeline(self, with_visualization: bool = True) -> ColorPipeline:
        return ColorPipeline(self.color_threshold, self.excluded_areas, with_visualization)

    def motion_pipeline(self) -> MotionPipeline:
        return MotionPipeline(
            edge_threshold=self.edge_threshold,
            comparison_points=self.comparison_points,
            tolerance=self.tolerance,
            excluded_areas=self.excluded_areas,
            rng=np.random.default_rng(self.random_seed),
        )

    def analyze_image(self, frame: Frame, with_visualization: bool = True) -> FrameAnalysisResult:
        """Run the color pipeline once on a still image."""

        result = self.color_pipeline(with_visualization).process(frame)
        if result is None:
            raise NoAnalyzableContent("Could not find any analyzable colors in the image.")
        return FrameAnalysisResult(
            time=None,
            dominant_color=result.dominant_color,
            percentage=result.percentage,
            processed_buffer=result.processed_buffer,
        )

    def analyze_color_video(
        self, source: FrameSource, with_visualization: bool = True
    ) -> list[FrameAnalysisResult]:
        """Dominant color for every sampled timestamp, in ascending time order.

        Frames without analyzable pixels are skipped; if all are, the run fails
        with `NoAnalyzableContent`.
        """

        pipeline = self.color_pipeline(with_visualization)

        def step(index: int, timestamp: float, frame: Frame) -> FrameAnalysisResult | None:
            result = pipeline.process(frame)
            if result is None:
                logger.warning("Frame %d (%.3fs) has no analyzable pixels; skipped", index, timestamp)
                return None
            return FrameAnalysisResult(
                time=timestamp,
                dominant_color=result.dominant_color,
                percentage=result.percentage,
                processed_buffer=result.processed_buffer,
            )

        def finish(results: list[Any]) -> None:
            if not results:
                raise NoAnalyzableContent("Could not find any analyzable colors in the video.")

        return self._run("color", source, step, finish)

    def analyze_motion_video(self, source: FrameSource) -> list[MotionFrameAnalysisResult]:
        """Motion verdict for every sampled frame, threading edge points between frames."""

        pipeline = self.motion_pipeline()

        def step(index: int, timestamp: float, frame: Frame) -> MotionFrameAnalysisResult:
            return pipeline.process(frame, index, timestamp)

        return self._run("motion", source, step)

    def recognize_text(
        self,
        recognizer: TextRecognizer,
        frame: Frame,
        area: ExcludedArea,
        adjustments: AdjustmentConfig | None = None,
    ) -> str:
        """Recognize text inside ``area`` of the (optionally adjusted) frame."""

        if adjustments is not None:
            frame = apply_adjustments(frame, adjustments)
        job = RecognitionJob(recognizer, self.recognition_timeout)
        self._recognition = job
        if self._cancel.is_set():
            job.cancel()
        try:
            return job.run(frame, area)
        finally:
            self._recognition = None
            self._cancel.clear()

    def _run(
        self,
        kind: str,
        source: FrameSource,
        step: Callable[[int, float, Frame], Any],
        finish: Callable[[list[Any]], None] | None = None,
    ) -> list[Any]:
        run = AnalysisRun(kind=kind)
        self.last_run = run
        run.start(0)

        results: list[Any] = []
        try:
            ensure_duration(source.duration, self.max_video_duration)
            timestamps = sample_timestamps(source.duration, self.analysis_fps)
            run.total = len(timestamps)
            self._notify(run)
            logger.info(
                "Starting %s analysis: %d frames at %.1f fps", kind, run.total, self.analysis_fps
            )
            for index, timestamp in timestamps:
                if self._cancel.is_set():
                    raise AnalysisCancelled("Analysis cancelled by user.")
                frame = source.read_at(timestamp)
                out = step(index, timestamp, frame)
                if out is not None:
                    results.append(out)
                run.advance()
                self._notify(run)
                logger.debug("%s frame %d/%d done", kind, run.current, run.total)
            if finish is not None:
                finish(results)
        except AnalysisError as exc:
            run.fail(exc)
            logger.info("%s analysis stopped at frame %d/%d: %s", kind, run.current, run.total, exc)
            raise
        except Exception as exc:
            error = DecodeFailure(f"Frame {run.current} could not be processed: {exc}")
            run.fail(error)
            logger.exception("%s analysis crashed at frame %d/%d", kind, run.current, run.total)
            raise error from exc
        finally:
            # A cancel request only applies to the run it interrupted.
            self._cancel.clear()

        run.complete(results)
        logger.info("Finished %s analysis: %d results", kind, len(results))
        return results

    def _notify(self, run: AnalysisRun) -> None:
        if self.on_progress is not None:
            self.on_progress(run.current, run.total)
