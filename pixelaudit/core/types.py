"""Shared type definitions used across the analysis engine.

Frames are row-major RGBA buffers held as ``numpy`` arrays of shape
``(height, width, 4)`` and dtype ``uint8``. Points are plain ``(x, y)`` tuples so
they can be hashed and compared by exact coordinate.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

Frame = np.ndarray
GrayFrame = np.ndarray

Point = tuple[int, int]

# Pixels with alpha below this value are treated as transparent and never analyzed.
ALPHA_CUTOFF = 128


@dataclass(frozen=True)
class RGBColor:
    """An 8-bit RGB color."""

    r: int
    g: int
    b: int

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)


@dataclass(frozen=True)
class ExcludedArea:
    """Axis-aligned rectangle (source-pixel coordinates) omitted from analysis.

    A pixel ``(px, py)`` is inside when ``x <= px < x + width`` and
    ``y <= py < y + height``. ``id`` only distinguishes areas within a session.
    """

    x: float
    y: float
    width: float
    height: float
    id: int = 0

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


@dataclass
class ColorCluster:
    """A greedy color cluster.

    ``representative`` is the color of the pixel that founded the cluster; it is
    never updated as more pixels join.
    """

    representative: RGBColor
    count: int


@dataclass
class DominantColorResult:
    """Output of one clustering pass over a frame."""

    dominant_color: RGBColor
    percentage: float
    clusters: list[ColorCluster]
    analyzable_pixels: int
    processed_buffer: Frame | None = None


@dataclass
class FrameAnalysisResult:
    """Color-path result for one video timestamp (or a still image, ``time=None``)."""

    time: float | None
    dominant_color: RGBColor
    percentage: float
    processed_buffer: Frame | None = None


@dataclass
class MotionComparison:
    """Classification of a sample of current edge points against the previous frame."""

    stable_points: list[Point] = field(default_factory=list)
    moved_points: list[Point] = field(default_factory=list)
    changed_percentage: float = 0.0
    low_confidence: bool = False

    @property
    def sample_size(self) -> int:
        return len(self.stable_points) + len(self.moved_points)


@dataclass
class MotionFrameAnalysisResult:
    """Motion-path result for one sampled video frame."""

    frame: int
    time: float
    changed_percentage: float
    motion_detected: bool
    low_confidence: bool
    stable_points: list[Point] = field(default_factory=list)
    moved_points: list[Point] = field(default_factory=list)
