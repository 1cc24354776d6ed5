"""Dominant color extraction via greedy online clustering.

This is a single scan-order pass, not k-means: each analyzable pixel joins the
first existing cluster whose representative lies within ``threshold`` (Euclidean
RGB distance, strict) or founds a new cluster. Representatives are the founding
pixel's color and never move, so results depend on scan order. Downstream
threshold tuning relies on this behavior; keep it.

With a positive threshold, identical colors always land in the cluster chosen
for their first occurrence (clusters are only ever appended), so the pass runs
over unique colors in first-occurrence order and adds their pixel counts in
bulk. A threshold of 0 matches nothing, so every pixel founds its own cluster.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from pixelaudit.core.exclusion import exclusion_mask
from pixelaudit.core.media import as_rgba
from pixelaudit.core.types import (
    ALPHA_CUTOFF,
    ColorCluster,
    DominantColorResult,
    ExcludedArea,
    Frame,
    RGBColor,
)

logger = logging.getLogger(__name__)

HIGHLIGHT_COLOR = (255, 0, 0)


def color_distance(c1: RGBColor, c2: RGBColor) -> float:
    dr = c1.r - c2.r
    dg = c1.g - c2.g
    db = c1.b - c2.b
    return float(np.sqrt(dr * dr + dg * dg + db * db))


def rgb_to_hex(color: RGBColor) -> str:
    return f"#{color.r:02x}{color.g:02x}{color.b:02x}"


def is_uniform(percentage: float, minimum_coverage: float | None) -> bool | None:
    """Derive a uniformity verdict from coverage; ``None`` when no minimum is set."""

    if minimum_coverage is None:
        return None
    return percentage / 100.0 >= minimum_coverage


def analyzable_mask(rgba: Frame, excluded_areas: Sequence[ExcludedArea] = ()) -> np.ndarray:
    """True for pixels that are opaque enough and outside every excluded area."""

    mask = rgba[..., 3] >= ALPHA_CUTOFF
    if excluded_areas:
        h, w = rgba.shape[:2]
        mask &= ~exclusion_mask(w, h, excluded_areas)
    return mask


def cluster_colors(
    frame: Frame,
    threshold: float,
    excluded_areas: Sequence[ExcludedArea] = (),
) -> tuple[list[ColorCluster], int]:
    """Run the greedy clustering pass.

    Returns ``(clusters, analyzable_pixel_count)`` with clusters in creation order.
    """

    rgba = as_rgba(frame)
    mask = analyzable_mask(rgba, excluded_areas)
    pixels = rgba[..., :3][mask].astype(np.int64)
    analyzable = int(pixels.shape[0])
    if analyzable == 0:
        return [], 0

    thr = float(threshold)
    if thr <= 0.0:
        # Nothing is within a zero radius, not even an identical color.
        clusters = [ColorCluster(representative=RGBColor(*p.tolist()), count=1) for p in pixels]
        return clusters, analyzable

    keys = (pixels[:, 0] << 16) | (pixels[:, 1] << 8) | pixels[:, 2]
    unique_keys, first_index, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.argsort(first_index, kind="stable")

    reps = np.empty((len(order), 3), dtype=np.float64)
    cluster_counts: list[int] = []
    representatives: list[RGBColor] = []

    for idx in order:
        key = int(unique_keys[idx])
        rgb = ((key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF)
        n = len(cluster_counts)
        if n:
            diff = reps[:n] - rgb
            dist = np.sqrt((diff * diff).sum(axis=1))
            match = np.flatnonzero(dist < thr)
            if match.size:
                cluster_counts[int(match[0])] += int(counts[idx])
                continue
        reps[n] = rgb
        cluster_counts.append(int(counts[idx]))
        representatives.append(RGBColor(*rgb))

    clusters = [ColorCluster(representative=r, count=c) for r, c in zip(representatives, cluster_counts)]
    return clusters, analyzable


def highlight_dominant(
    frame: Frame,
    dominant: RGBColor,
    threshold: float,
    excluded_areas: Sequence[ExcludedArea] = (),
) -> Frame:
    """Return a copy of ``frame`` with pixels near the dominant color painted red."""

    rgba = as_rgba(frame)
    out = rgba.copy()
    diff = rgba[..., :3].astype(np.float64) - np.array(dominant.as_tuple(), dtype=np.float64)
    near = np.sqrt((diff * diff).sum(axis=2)) < float(threshold)
    near &= analyzable_mask(rgba, excluded_areas)
    out[near, 0] = HIGHLIGHT_COLOR[0]
    out[near, 1] = HIGHLIGHT_COLOR[1]
    out[near, 2] = HIGHLIGHT_COLOR[2]
    return out


def dominant_color(
    frame: Frame,
    threshold: float,
    excluded_areas: Sequence[ExcludedArea] = (),
    *,
    with_visualization: bool = True,
) -> DominantColorResult | None:
    """Find the dominant color cluster and its coverage.

    Returns ``None`` when no pixel is analyzable (all transparent or excluded).
    Ties between equally large clusters go to the earliest-created cluster.
    """

    clusters, analyzable = cluster_colors(frame, threshold, excluded_areas)
    if not clusters:
        return None

    best = max(range(len(clusters)), key=lambda i: clusters[i].count)
    dominant = clusters[best]
    percentage = dominant.count / (analyzable or 1) * 100.0
    logger.debug(
        "clusters=%d analyzable=%d dominant=%s coverage=%.2f%%",
        len(clusters),
        analyzable,
        rgb_to_hex(dominant.representative),
        percentage,
    )

    processed = (
        highlight_dominant(frame, dominant.representative, threshold, excluded_areas)
        if with_visualization
        else None
    )
    return DominantColorResult(
        dominant_color=dominant.representative,
        percentage=percentage,
        clusters=clusters,
        analyzable_pixels=analyzable,
        processed_buffer=processed,
    )
