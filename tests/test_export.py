import json

import pytest

from pixelaudit.core.export import (
    color_result_to_export,
    color_results_to_export,
    format_timestamp,
    motion_results_to_export,
)
from pixelaudit.core.types import FrameAnalysisResult, MotionFrameAnalysisResult, RGBColor


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "00:00.00"), (5.123, "00:05.12"), (75.5, "01:15.50"), (600, "10:00.00")],
)
def test_format_timestamp(seconds, expected):
    assert format_timestamp(seconds) == expected


def test_motion_export_drops_point_arrays():
    results = [
        MotionFrameAnalysisResult(
            frame=3,
            time=0.2,
            changed_percentage=12.5,
            motion_detected=True,
            low_confidence=False,
            stable_points=[(1, 1)],
            moved_points=[(2, 2)],
        )
    ]
    exported = motion_results_to_export(results)
    assert exported == [
        {
            "frame": 3,
            "time": 0.2,
            "changedPercentage": 12.5,
            "motionDetected": True,
            "lowConfidence": False,
        }
    ]
    json.dumps(exported)


def test_color_export():
    result = FrameAnalysisResult(time=1.5, dominant_color=RGBColor(255, 0, 16), percentage=92.0)
    out = color_result_to_export(result, minimum_coverage=0.9)
    assert out["dominantColor"] == {"r": 255, "g": 0, "b": 16}
    assert out["hex"] == "#ff0010"
    assert out["timestamp"] == "00:01.50"
    assert out["uniform"] is True

    image = FrameAnalysisResult(time=None, dominant_color=RGBColor(0, 0, 0), percentage=40.0)
    (out,) = color_results_to_export([image])
    assert out["time"] is None
    assert "timestamp" not in out
    assert "uniform" not in out
