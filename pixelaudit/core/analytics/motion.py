"""Frame-to-frame edge-point comparison.

Matching is by exact coordinate: an edge point that shifted by a single pixel
counts as moved. Sensitivity is tuned through the edge threshold and the
motion tolerance, not here.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from pixelaudit.core.types import MotionComparison, Point


def compare_points(
    previous: Sequence[Point],
    current: Sequence[Point],
    comparison_points: int,
    rng: np.random.Generator | None = None,
) -> MotionComparison:
    """Classify a uniform random sample of ``current`` as stable or moved.

    The sample has ``min(len(current), comparison_points)`` points drawn without
    replacement. ``low_confidence`` flags that fewer edge points than requested
    were available.
    """

    sample_size = min(len(current), int(comparison_points))
    if sample_size <= 0:
        return MotionComparison()

    low_confidence = 0 < len(current) < int(comparison_points)
    previous_set = {(int(x), int(y)) for x, y in previous}

    rng = rng if rng is not None else np.random.default_rng()
    picked = rng.choice(len(current), size=sample_size, replace=False)

    stable: list[Point] = []
    moved: list[Point] = []
    for i in picked:
        x, y = current[int(i)]
        p = (int(x), int(y))
        if p in previous_set:
            stable.append(p)
        else:
            moved.append(p)

    return MotionComparison(
        stable_points=stable,
        moved_points=moved,
        changed_percentage=len(moved) / sample_size * 100.0,
        low_confidence=low_confidence,
    )


def is_motion(changed_percentage: float, tolerance: float) -> bool:
    return changed_percentage / 100.0 >= float(tolerance)
