"""Pydantic models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    color_threshold: float = Field(default=30.0, ge=0.0, le=255.0)
    minimum_coverage: float | None = Field(default=None, ge=0.0, le=1.0)
    edge_threshold: float = Field(default=70.0, ge=0.0, le=255.0)
    comparison_points: int = Field(default=1000, ge=50, le=1000)
    tolerance: float = Field(default=0.1, ge=0.0, le=1.0)
    analysis_fps: float = Field(default=15.0, gt=0.0)
    max_video_duration: float = Field(default=15.0, gt=0.0)
    recognition_timeout: float = Field(default=5.0, gt=0.0)
    random_seed: int | None = None


class ExcludedAreaSchema(BaseModel):
    """Exclusion rectangle in source-pixel coordinates."""

    id: int = 0
    x: float
    y: float
    width: float
    height: float


class ExclusionsSchema(BaseModel):
    excluded_areas: list[ExcludedAreaSchema]


class ColorSchema(BaseModel):
    r: int
    g: int
    b: int


class ColorResultSchema(BaseModel):
    """Dominant color for an image (``time`` is null) or one video frame."""

    model_config = ConfigDict(populate_by_name=True)

    time: float | None
    timestamp: str | None = None
    dominant_color: ColorSchema = Field(alias="dominantColor")
    hex: str
    percentage: float
    uniform: bool | None = None


class ColorAnalysisSchema(BaseModel):
    media_type: str
    results: list[ColorResultSchema]
    frames_sampled: int


class MotionResultSchema(BaseModel):
    frame: int
    time: float
    changed_percentage: float
    motion_detected: bool
    low_confidence: bool
    stable_points: int
    moved_points: int


class MotionAnalysisSchema(BaseModel):
    results: list[MotionResultSchema]
    frames_sampled: int
    motion_frames: int

    @field_validator("motion_frames")
    @classmethod
    def _validate_motion_frames(cls, v: int) -> int:
        if v < 0:
            raise ValueError("motion_frames must be >= 0")
        return v
