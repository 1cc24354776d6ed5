"""Analysis configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `PXA_`. They only provide defaults: each analysis session receives
its parameters explicitly.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `PXA_` env overrides."""

    # Dominant-color clustering radius (Euclidean RGB distance).
    color_threshold: float = Field(30.0, ge=0.0, le=255.0)
    # Optional coverage ratio a "uniform" verdict requires.
    minimum_coverage: float | None = None
    # Sobel magnitude cutoff.
    edge_threshold: float = Field(70.0, ge=0.0, le=255.0)
    # Motion sample cap.
    comparison_points: int = Field(1000, ge=50, le=1000)
    # Changed-edge ratio at or above which a frame counts as motion.
    tolerance: float = Field(0.1, ge=0.0, le=1.0)
    analysis_fps: float = 15.0
    # Longest accepted video, seconds. Some tool variants use 5.
    max_video_duration: float = 15.0
    recognition_timeout: float = 5.0
    # Seed for motion sampling; None draws fresh entropy per run.
    random_seed: int | None = None

    model_config = SettingsConfigDict(env_prefix="PXA_", validate_assignment=True)

    @field_validator("minimum_coverage")
    @classmethod
    def _validate_minimum_coverage(cls, v: float | None) -> float | None:
        if v is None:
            return None
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("minimum_coverage must be in [0, 1]")
        return float(v)

    @field_validator("analysis_fps", "max_video_duration", "recognition_timeout")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if float(v) <= 0.0:
            raise ValueError("value must be > 0")
        return float(v)


def settings_to_dict(settings: AnalysisSettings) -> dict[str, Any]:
    return cast(dict[str, Any], settings.model_dump())


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/analysis.config.yml)."""

    return Path(os.getenv("PXA_CONFIG", "config/analysis.config.yml"))


def load_settings(**overrides: Any) -> AnalysisSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override; keyword
    ``overrides`` win over both.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = AnalysisSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides, **overrides}
    return AnalysisSettings(**merged)
