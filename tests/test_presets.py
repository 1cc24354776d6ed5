from __future__ import annotations

import pytest

from pixelaudit.core.config.presets import PRESETS, list_presets, preset_patch
from pixelaudit.core.config.settings import AnalysisSettings, settings_to_dict


def test_list_presets_has_expected_shape_and_labels():
    presets = list_presets()
    ids = {p["id"] for p in presets}
    assert set(PRESETS.keys()) == ids

    by_id = {p["id"]: p for p in presets}
    assert by_id["short_clip"]["label"]
    assert by_id["short_clip"]["settings"]["max_video_duration"] == 5.0
    assert by_id["high_sensitivity"]["settings"]["edge_threshold"] == 40.0


def test_preset_patch_is_a_copy():
    patch = preset_patch("motion_detection")
    patch["comparison_points"] = 1
    assert PRESETS["motion_detection"]["comparison_points"] == 1000


def test_unknown_preset():
    with pytest.raises(KeyError):
        preset_patch("nope")


@pytest.mark.parametrize("preset_id", sorted(PRESETS))
def test_every_preset_produces_valid_settings(preset_id):
    merged = {**settings_to_dict(AnalysisSettings()), **preset_patch(preset_id)}
    AnalysisSettings(**merged)
