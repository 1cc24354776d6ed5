from __future__ import annotations

from typing import Any

# Tool variants. Each preset is a patch applied over the loaded settings.
#
# Notes:
# - max_video_duration is checked before any frame is sampled
# - edge_threshold/tolerance trade sensitivity for false positives on noisy footage

PRESETS: dict[str, dict[str, Any]] = {
    "color_uniformity": {
        "color_threshold": 30.0,
        "max_video_duration": 15.0,
    },
    "motion_detection": {
        "edge_threshold": 70.0,
        "comparison_points": 1000,
        "tolerance": 0.1,
        "max_video_duration": 15.0,
    },
    # Short clips only; matches the stricter upload limit of some tool instances.
    "short_clip": {
        "max_video_duration": 5.0,
    },
    "high_sensitivity": {
        "edge_threshold": 40.0,
        "tolerance": 0.05,
    },
}


PRESET_LABELS: dict[str, str] = {
    "color_uniformity": "Color uniformity",
    "motion_detection": "Motion detection",
    "short_clip": "Short clip (5s)",
    "high_sensitivity": "High sensitivity",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
