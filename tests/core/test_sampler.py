import threading

import numpy as np
import pytest

from pixelaudit.core.analytics.adjustments import AdjustmentConfig
from pixelaudit.core.analytics.sampler import (
    AnalysisRun,
    AnalysisSession,
    RunState,
    sample_timestamps,
)
from pixelaudit.core.config.settings import AnalysisSettings
from pixelaudit.core.errors import (
    AnalysisCancelled,
    DecodeFailure,
    ExternalServiceTimeout,
    InvalidExclusionGeometry,
    MediaTooLong,
    NoAnalyzableContent,
)
from pixelaudit.core.types import ExcludedArea
from pixelaudit.core.video_sources.base import InMemoryVideoSource


def _solid(rgb, alpha=255, size=4):
    frame = np.zeros((size, size, 4), dtype=np.uint8)
    frame[..., :3] = rgb
    frame[..., 3] = alpha
    return frame


def _step(col, size=8):
    frame = _solid((0, 0, 0), size=size)
    frame[:, col:, :3] = 255
    return frame


class _FailingSource(InMemoryVideoSource):
    def __init__(self, frames, fps, fail_at):
        super().__init__(frames, fps)
        self.fail_at = fail_at
        self.reads = []

    def read_at(self, timestamp):
        self.reads.append(timestamp)
        if len(self.reads) - 1 == self.fail_at:
            raise DecodeFailure("boom")
        return super().read_at(timestamp)


def test_sample_timestamps():
    assert sample_timestamps(0.2, 15) == [(0, 0.0), (1, 1 / 15), (2, 2 / 15)]
    assert len(sample_timestamps(2.0, 15)) == 30
    assert sample_timestamps(0.0, 15) == []
    assert sample_timestamps(0.05, 15) == []


def test_color_video_results_in_frame_order():
    frames = [_solid((255, 0, 0))] * 15 + [_solid((0, 0, 255))] * 15
    seen = []
    session = AnalysisSession(on_progress=lambda cur, total: seen.append((cur, total)))
    results = session.analyze_color_video(InMemoryVideoSource(frames, fps=15))

    assert len(results) == 30
    assert [r.time for r in results] == [i / 15 for i in range(30)]
    assert results[0].dominant_color.as_tuple() == (255, 0, 0)
    assert results[-1].dominant_color.as_tuple() == (0, 0, 255)
    assert seen[0] == (0, 30)
    assert seen[-1] == (30, 30)
    assert session.last_run.state is RunState.COMPLETED
    assert session.last_run.progress == (30, 30)


def test_color_video_skips_frames_without_content():
    frames = [_solid((1, 1, 1)), _solid((1, 1, 1), alpha=0), _solid((2, 2, 2))]
    session = AnalysisSession(analysis_fps=3)
    results = session.analyze_color_video(InMemoryVideoSource(frames, fps=3))
    assert [r.time for r in results] == [0.0, 2 / 3]
    assert session.last_run.total == 3


def test_color_video_with_no_content_fails():
    frames = [_solid((1, 1, 1), alpha=0)] * 3
    session = AnalysisSession(analysis_fps=3)
    with pytest.raises(NoAnalyzableContent):
        session.analyze_color_video(InMemoryVideoSource(frames, fps=3))
    assert session.last_run.state is RunState.FAILED
    assert session.last_run.results == []


def test_too_long_video_fails_before_reading_frames():
    source = _FailingSource([_solid((0, 0, 0))] * 30, fps=15, fail_at=-1)
    session = AnalysisSession(max_video_duration=1.0)
    with pytest.raises(MediaTooLong) as excinfo:
        session.analyze_motion_video(source)
    assert "1 seconds or shorter" in str(excinfo.value)
    assert source.reads == []
    assert session.last_run.state is RunState.FAILED
    assert isinstance(session.last_run.error, MediaTooLong)


def test_decode_failure_aborts_whole_run():
    source = _FailingSource([_solid((0, 0, 0))] * 15, fps=15, fail_at=3)
    session = AnalysisSession()
    with pytest.raises(DecodeFailure):
        session.analyze_color_video(source)
    run = session.last_run
    assert run.state is RunState.FAILED
    assert run.results == []
    assert run.current == 3


class _CrashingSource(InMemoryVideoSource):
    def read_at(self, timestamp):
        if timestamp > 0:
            raise RuntimeError("capture backend died")
        return super().read_at(timestamp)


def test_unexpected_error_still_ends_the_run():
    session = AnalysisSession()
    with pytest.raises(DecodeFailure) as excinfo:
        session.analyze_color_video(_CrashingSource([_solid((0, 0, 0))] * 3, fps=15))
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    run = session.last_run
    assert run.state is RunState.FAILED
    assert run.done
    assert run.current == 1
    assert run.results == []
    assert run.error is excinfo.value


def test_cancel_between_frames():
    session = AnalysisSession()

    def _progress(current, _total):
        if current == 2:
            session.cancel()

    session.on_progress = _progress
    with pytest.raises(AnalysisCancelled):
        session.analyze_motion_video(InMemoryVideoSource([_step(3)] * 15, fps=15))
    assert session.last_run.state is RunState.CANCELLED
    assert session.last_run.current == 2

    # A new run starts clean.
    session.on_progress = None
    results = session.analyze_motion_video(InMemoryVideoSource([_step(3)] * 3, fps=15))
    assert len(results) == 3
    assert session.last_run.state is RunState.COMPLETED


def test_cancel_requested_before_a_run_stops_it():
    session = AnalysisSession()
    session.cancel()
    with pytest.raises(AnalysisCancelled):
        session.analyze_color_video(InMemoryVideoSource([_solid((0, 0, 0))] * 3, fps=15))
    assert session.last_run.state is RunState.CANCELLED
    assert session.last_run.current == 0

    # Consumed by the cancelled run.
    assert len(session.analyze_color_video(InMemoryVideoSource([_solid((0, 0, 0))] * 3, fps=15))) == 3


def test_motion_video_static_then_moving():
    frames = [_step(4)] * 5 + [_step(5)] * 5
    session = AnalysisSession(comparison_points=50, random_seed=0, analysis_fps=5)
    results = session.analyze_motion_video(InMemoryVideoSource(frames, fps=5))

    assert [r.frame for r in results] == list(range(10))
    assert results[0].changed_percentage == 100.0
    assert all(r.changed_percentage == 0.0 for r in results[1:5])
    assert results[5].motion_detected is True
    assert all(r.low_confidence for r in results)
    for r in results:
        assert 0.0 <= r.changed_percentage <= 100.0


def test_motion_video_is_reproducible_with_seed():
    rng = np.random.default_rng(5)
    frames = [rng.integers(0, 256, size=(24, 24, 4), dtype=np.uint8) for _ in range(6)]
    for f in frames:
        f[..., 3] = 255
    a = AnalysisSession(random_seed=9, comparison_points=50).analyze_motion_video(
        InMemoryVideoSource(frames, fps=15)
    )
    b = AnalysisSession(random_seed=9, comparison_points=50).analyze_motion_video(
        InMemoryVideoSource(frames, fps=15)
    )
    assert [r.moved_points for r in a] == [r.moved_points for r in b]


def test_analyze_image_and_uniform_verdict():
    session = AnalysisSession(minimum_coverage=0.9)
    result = session.analyze_image(_solid((0, 128, 0)))
    assert result.time is None
    assert result.percentage == 100.0
    assert session.is_uniform(result) is True


def test_analyze_image_fully_excluded():
    session = AnalysisSession()
    session.add_excluded_area(0, 0, 4, 4)
    with pytest.raises(NoAnalyzableContent):
        session.analyze_image(_solid((0, 128, 0)))


def test_excluded_area_management():
    session = AnalysisSession()
    a = session.add_excluded_area(0, 0, 1, 1)
    b = session.add_excluded_area(1, 1, 2, 2)
    assert (a.id, b.id) == (1, 2)

    session.remove_excluded_area(a.id)
    c = session.add_excluded_area(3, 3, 1, 1)
    assert c.id == 3
    assert [x.id for x in session.excluded_areas] == [2, 3]

    moved = session.update_excluded_area(2, x=5)
    assert moved.x == 5
    with pytest.raises(KeyError):
        session.update_excluded_area(99, x=1)

    session.clear_excluded_areas()
    assert session.excluded_areas == ()


def test_area_limit_is_five():
    session = AnalysisSession()
    for i in range(5):
        session.add_excluded_area(i, 0, 1, 1)
    with pytest.raises(InvalidExclusionGeometry):
        session.add_excluded_area(9, 9, 1, 1)
    assert len(session.excluded_areas) == 5


def test_import_is_all_or_nothing():
    session = AnalysisSession()
    session.add_excluded_area(0, 0, 1, 1)
    bad = '[{"x": 1, "y": 1, "width": 2, "height": 2}, {"x": "1", "y": 1, "width": 2, "height": 2}]'
    with pytest.raises(InvalidExclusionGeometry):
        session.import_excluded_areas(bad)
    assert len(session.excluded_areas) == 1

    too_many = [{"x": i, "y": 0, "width": 1, "height": 1} for i in range(5)]
    with pytest.raises(InvalidExclusionGeometry):
        session.import_excluded_areas(too_many)
    assert len(session.excluded_areas) == 1

    added = session.import_excluded_areas('{"x": 4, "y": 4, "width": 1, "height": 1}')
    assert [a.id for a in added] == [2]


def test_session_from_settings():
    settings = AnalysisSettings(edge_threshold=40, tolerance=0.05, random_seed=3)
    session = AnalysisSession.from_settings(settings, excluded_areas=[ExcludedArea(0, 0, 1, 1)])
    assert session.edge_threshold == 40.0
    assert session.tolerance == 0.05
    assert session.random_seed == 3
    assert session.excluded_areas[0].id == 1


def test_run_transitions():
    run = AnalysisRun(kind="color")
    assert run.state is RunState.IDLE
    run.start(2)
    with pytest.raises(RuntimeError):
        run.start(2)
    run.advance()
    assert run.progress == (1, 2)
    run.complete(["a"])
    assert run.done


class _SlowRecognizer:
    def __init__(self):
        self.released = threading.Event()
        self.images = []

    def recognize(self, image, timeout=None):
        self.images.append(image)
        self.released.wait(5)
        return "late"

    def terminate(self):
        self.released.set()


class _EchoRecognizer:
    def __init__(self):
        self.images = []
        self.terminated = False

    def recognize(self, image, timeout=None):
        self.images.append(image)
        return "ok"

    def terminate(self):
        self.terminated = True


def test_recognize_text_applies_adjustments_to_region():
    frame = _solid((10, 200, 30), size=6)
    rec = _EchoRecognizer()
    session = AnalysisSession()
    text = session.recognize_text(rec, frame, ExcludedArea(1, 1, 2, 3), AdjustmentConfig(grayscale=True))
    assert text == "ok"
    (image,) = rec.images
    assert image.shape == (3, 2, 4)
    r, g, b = image[0, 0, :3].tolist()
    assert r == g == b
    assert rec.terminated


def test_recognize_text_uses_session_timeout():
    session = AnalysisSession(recognition_timeout=0.1)
    rec = _SlowRecognizer()
    with pytest.raises(ExternalServiceTimeout):
        session.recognize_text(rec, _solid((0, 0, 0)), ExcludedArea(0, 0, 2, 2))
    assert rec.released.is_set()


def test_session_cancel_stops_recognition():
    session = AnalysisSession(recognition_timeout=5.0)
    rec = _SlowRecognizer()
    timer = threading.Timer(0.1, session.cancel)
    timer.start()
    try:
        with pytest.raises(AnalysisCancelled):
            session.recognize_text(rec, _solid((0, 0, 0)), ExcludedArea(0, 0, 2, 2))
    finally:
        timer.cancel()
    assert rec.released.is_set()
