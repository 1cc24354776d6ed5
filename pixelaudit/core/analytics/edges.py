"""Sobel edge-point extraction.

Only interior pixels (``1 <= x < w-1``, ``1 <= y < h-1``) are evaluated. A pixel is
an edge point when its gradient magnitude is strictly greater than the threshold.
Output is in scan order (row-major).
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from pixelaudit.core.exclusion import exclusion_mask
from pixelaudit.core.types import ExcludedArea, GrayFrame, Point

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.int32)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.int32)


def gradient_magnitude(gray: GrayFrame) -> np.ndarray:
    """Return the Sobel magnitude for interior pixels, shape ``(h-2, w-2)``."""

    g = np.asarray(gray, dtype=np.int32)
    h, w = g.shape[:2]
    if h < 3 or w < 3:
        return np.zeros((max(0, h - 2), max(0, w - 2)), dtype=np.float64)

    gx = np.zeros((h - 2, w - 2), dtype=np.int32)
    gy = np.zeros((h - 2, w - 2), dtype=np.int32)
    for ky in range(3):
        for kx in range(3):
            window = g[ky : ky + h - 2, kx : kx + w - 2]
            if SOBEL_X[ky, kx]:
                gx += SOBEL_X[ky, kx] * window
            if SOBEL_Y[ky, kx]:
                gy += SOBEL_Y[ky, kx] * window
    return np.sqrt(gx.astype(np.float64) ** 2 + gy.astype(np.float64) ** 2)


def sobel(
    gray: GrayFrame,
    threshold: float,
    excluded_areas: Sequence[ExcludedArea] = (),
    width: int | None = None,
    height: int | None = None,
) -> list[Point]:
    """Return edge points of a grayscale frame.

    Args:
        gray: ``(h, w)`` grayscale buffer, or a flat buffer with ``width``/``height``.
        threshold: Magnitude cutoff (0-255); points need ``magnitude > threshold``.
        excluded_areas: Rectangles whose pixels are never reported.
    """

    g = np.asarray(gray)
    if g.ndim == 1:
        if width is None or height is None or g.size != int(width) * int(height):
            raise ValueError("flat grayscale buffers need matching width and height")
        g = g.reshape(int(height), int(width))

    h, w = g.shape[:2]
    mag = gradient_magnitude(g)
    if mag.size == 0:
        return []

    hits = mag > float(threshold)
    if excluded_areas:
        hits &= ~exclusion_mask(w, h, excluded_areas)[1 : h - 1, 1 : w - 1]

    ys, xs = np.nonzero(hits)
    return [(int(x) + 1, int(y) + 1) for y, x in zip(ys, xs)]
