"""Per-pixel preprocessing used before text recognition.

Steps are applied in order: contrast, optional grayscale blend, optional
binarization against the mean luminance of the unadjusted image. Alpha is kept.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pixelaudit.core.analytics.grayscale import luminance
from pixelaudit.core.errors import InvalidExclusionGeometry
from pixelaudit.core.exclusion import clamp_area
from pixelaudit.core.media import as_rgba
from pixelaudit.core.types import ExcludedArea, Frame


@dataclass(frozen=True)
class AdjustmentConfig:
    contrast: float = 0.0  # -255..255
    grayscale: bool = False
    grayscale_amount: float = 255.0  # 0..255, blend weight toward gray
    binarize: bool = False


def contrast_factor(contrast: float) -> float:
    c = float(contrast)
    return (259.0 * (c + 255.0)) / (255.0 * (259.0 - c))


def apply_adjustments(frame: Frame, config: AdjustmentConfig) -> Frame:
    """Return an adjusted copy of ``frame``."""

    rgba = as_rgba(frame)
    rgb = rgba[..., :3].astype(np.float64)

    avg_luminance = float(luminance(rgb).mean()) if config.binarize and rgb.size else 0.0

    rgb = np.clip(contrast_factor(config.contrast) * (rgb - 128.0) + 128.0, 0.0, 255.0)

    if config.grayscale:
        alpha = float(config.grayscale_amount) / 255.0
        gray = luminance(rgb)[..., None]
        rgb = rgb * (1.0 - alpha) + gray * alpha

    if config.binarize:
        current = luminance(rgb)
        value = np.where(current < avg_luminance, 0.0, 255.0)
        rgb = np.repeat(value[..., None], 3, axis=2)

    out = rgba.copy()
    # Round on store, as a clamped byte buffer does.
    out[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    return out


def crop_region(frame: Frame, area: ExcludedArea) -> Frame:
    """Copy the pixels of ``area`` (clamped to the frame) into a new buffer."""

    rgba = as_rgba(frame)
    h, w = rgba.shape[:2]
    box = clamp_area(area, w, h)
    x1, y1 = int(box.x), int(box.y)
    x2, y2 = int(box.x + box.width), int(box.y + box.height)
    if x2 <= x1 or y2 <= y1:
        raise InvalidExclusionGeometry("Please define a valid region with a positive width and height.")
    return rgba[y1:y2, x1:x2].copy()
