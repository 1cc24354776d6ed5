"""Luminosity grayscale conversion."""

from __future__ import annotations

import numpy as np

from pixelaudit.core.media import as_rgba
from pixelaudit.core.types import Frame, GrayFrame

# ITU-R BT.601 luma weights.
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Return float luminance for an ``(..., >=3)`` array of RGB(A) values."""

    rgb = np.asarray(rgb, dtype=np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]


def to_grayscale(frame: Frame, width: int | None = None, height: int | None = None) -> GrayFrame:
    """Convert an RGBA frame to a single-channel ``(h, w)`` uint8 buffer.

    Values are rounded and clamped to ``[0, 255]``; alpha is ignored. Flat buffers
    are accepted when ``width`` and ``height`` are given.
    """

    rgba = as_rgba(frame, width, height)
    gray = luminance(rgba)
    return np.clip(np.rint(gray), 0, 255).astype(np.uint8)
