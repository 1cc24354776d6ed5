"""Exclusion-area geometry.

Areas are half-open rectangles in source-pixel coordinates. A session holds at
most `MAX_EXCLUDED_AREAS` of them. JSON import is all-or-nothing: one malformed
entry rejects the whole payload.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

import numpy as np

from pixelaudit.core.errors import InvalidExclusionGeometry
from pixelaudit.core.types import ExcludedArea

MAX_EXCLUDED_AREAS = 5

_AREA_FIELDS = ("x", "y", "width", "height")


def _clamp(v: float, lo: float, hi: float) -> float:
    return lo if v < lo else hi if v > hi else v


def is_excluded(px: float, py: float, areas: Iterable[ExcludedArea]) -> bool:
    for area in areas:
        if area.contains(px, py):
            return True
    return False


def area_from_corners(x0: float, y0: float, x1: float, y1: float, area_id: int = 0) -> ExcludedArea:
    """Build an area from two opposite corners of a dragged rectangle."""

    return ExcludedArea(
        x=min(x0, x1),
        y=min(y0, y1),
        width=abs(x1 - x0),
        height=abs(y1 - y0),
        id=area_id,
    )


def clamp_area(area: ExcludedArea, frame_w: int, frame_h: int) -> ExcludedArea:
    x1 = _clamp(float(area.x), 0.0, float(frame_w))
    y1 = _clamp(float(area.y), 0.0, float(frame_h))
    x2 = _clamp(float(area.x + area.width), 0.0, float(frame_w))
    y2 = _clamp(float(area.y + area.height), 0.0, float(frame_h))
    return replace(area, x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))


def _pixel_span(start: float, size: float, limit: int) -> tuple[int, int]:
    """Return the half-open integer range of pixel indices inside ``[start, start + size)``."""

    lo = int(_clamp(math.ceil(start), 0, limit))
    hi = int(_clamp(math.ceil(start + size), 0, limit))
    return lo, max(lo, hi)


def exclusion_mask(width: int, height: int, areas: Sequence[ExcludedArea]) -> np.ndarray:
    """Return a ``(height, width)`` boolean mask, True where a pixel is excluded."""

    mask = np.zeros((int(height), int(width)), dtype=bool)
    for area in areas:
        if area.width <= 0 or area.height <= 0:
            continue
        x1, x2 = _pixel_span(float(area.x), float(area.width), int(width))
        y1, y2 = _pixel_span(float(area.y), float(area.height), int(height))
        if x2 > x1 and y2 > y1:
            mask[y1:y2, x1:x2] = True
    return mask


def check_area_limit(current: int, adding: int, limit: int = MAX_EXCLUDED_AREAS) -> None:
    if current + adding > limit:
        raise InvalidExclusionGeometry(
            f"At most {limit} excluded areas are supported ({current} defined, {adding} requested)."
        )


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are not coordinates.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _area_from_mapping(item: Any, index: int) -> ExcludedArea:
    if not isinstance(item, dict):
        raise InvalidExclusionGeometry(f"Area #{index} must be an object with x, y, width and height.")
    values: dict[str, float] = {}
    for name in _AREA_FIELDS:
        if name not in item:
            raise InvalidExclusionGeometry(f"Area #{index} is missing required field '{name}'.")
        if not _is_number(item[name]):
            raise InvalidExclusionGeometry(f"Area #{index} field '{name}' must be a number.")
        values[name] = item[name]
    return ExcludedArea(**values)


def parse_excluded_areas(payload: str | bytes | list | dict) -> list[ExcludedArea]:
    """Parse imported exclusion areas.

    Accepts a JSON array of area objects, a single area object, or an object with
    an ``excludedAreas`` array. The whole import fails on the first invalid entry.
    Returned areas carry ``id=0``; the owning session assigns ids.
    """

    data: Any = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidExclusionGeometry(f"Failed to parse JSON: {exc}") from exc

    if isinstance(data, dict) and "excludedAreas" in data:
        data = data["excludedAreas"]
        if not isinstance(data, list):
            raise InvalidExclusionGeometry("'excludedAreas' must be an array of areas.")

    if isinstance(data, dict):
        return [_area_from_mapping(data, 0)]
    if isinstance(data, list):
        return [_area_from_mapping(item, i) for i, item in enumerate(data)]
    raise InvalidExclusionGeometry(
        "Invalid JSON format. Expected an area object, an array of areas, "
        "or an object with an 'excludedAreas' array."
    )


def areas_to_jsonable(areas: Iterable[ExcludedArea]) -> list[dict[str, float]]:
    return [{"x": a.x, "y": a.y, "width": a.width, "height": a.height} for a in areas]
