"""Media classification and pixel-buffer acquisition for still images.

Decoding is delegated to OpenCV; everything handed to the analytics modules is
normalized to an RGBA ``uint8`` array of shape ``(height, width, 4)``.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

import cv2
import numpy as np

from pixelaudit.core.errors import (
    DecodeFailure,
    MalformedBuffer,
    MediaTooLong,
    UnsupportedMediaType,
)
from pixelaudit.core.types import Frame

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".tif"})
VIDEO_SUFFIXES = frozenset({".mp4", ".mov", ".mkv", ".avi", ".webm", ".m4v"})


def classify_media(
    filename: str | None,
    content_type: str | None = None,
    *,
    allowed: frozenset[str] = frozenset({"image", "video"}),
) -> str:
    """Return ``"image"`` or ``"video"`` for an upload, or raise `UnsupportedMediaType`.

    The declared MIME class wins; the filename suffix is used when the MIME type
    is missing or generic.
    """

    kind: str | None = None
    mime = (content_type or "").split(";")[0].strip().lower()
    if not mime or mime == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(filename or "")
        mime = (guessed or "").lower()
    if mime.startswith("image/"):
        kind = "image"
    elif mime.startswith("video/"):
        kind = "video"
    elif filename:
        suffix = Path(filename).suffix.lower()
        if suffix in IMAGE_SUFFIXES:
            kind = "image"
        elif suffix in VIDEO_SUFFIXES:
            kind = "video"

    if kind is None or kind not in allowed:
        wanted = " or ".join(sorted(allowed))
        raise UnsupportedMediaType(f"Unsupported file type. Please select an {wanted} file.")
    return kind


def ensure_duration(duration: float, limit: float) -> None:
    """Fail fast when a video is longer than the configured ceiling."""

    if duration > limit:
        raise MediaTooLong(duration, limit)


def as_rgba(buffer: np.ndarray | bytes | bytearray, width: int | None = None, height: int | None = None) -> Frame:
    """Normalize a pixel buffer to an ``(h, w, 4)`` uint8 RGBA array.

    Flat buffers (``bytes`` or 1-D arrays) need ``width`` and ``height`` and must hold
    exactly ``width * height * 4`` values. 2-D (gray) and 3-channel arrays get an
    opaque alpha channel.
    """

    arr = np.frombuffer(bytes(buffer), dtype=np.uint8) if isinstance(buffer, (bytes, bytearray)) else np.asarray(buffer)

    if arr.ndim == 1:
        if width is None or height is None:
            raise MalformedBuffer("width and height are required for flat buffers")
        expected = int(width) * int(height) * 4
        if arr.size != expected:
            raise MalformedBuffer(
                f"buffer length {arr.size} does not match {width}x{height}x4 = {expected}"
            )
        return arr.astype(np.uint8, copy=False).reshape(int(height), int(width), 4)

    if arr.ndim == 2:
        arr = np.dstack([arr, arr, arr])
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise MalformedBuffer(f"unsupported buffer shape {arr.shape}")
    if width is not None and arr.shape[1] != int(width):
        raise MalformedBuffer(f"buffer width {arr.shape[1]} != {width}")
    if height is not None and arr.shape[0] != int(height):
        raise MalformedBuffer(f"buffer height {arr.shape[0]} != {height}")

    arr = arr.astype(np.uint8, copy=False)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr


def bgr_to_rgba(image: np.ndarray) -> Frame:
    """Convert an OpenCV-decoded image (gray, BGR or BGRA) to RGBA."""

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def load_image(path: str | Path) -> Frame:
    """Decode an image file into an RGBA frame."""

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise DecodeFailure(f"Failed to load the image: {path}")
    if image.dtype != np.uint8:
        # 16-bit PNG/TIFF: keep the high byte.
        image = (image >> 8).astype(np.uint8)
    logger.debug("Loaded image %s (%sx%s)", path, image.shape[1], image.shape[0])
    return bgr_to_rgba(image)


def decode_image_bytes(data: bytes) -> Frame:
    """Decode an in-memory encoded image (PNG/JPEG/...) into an RGBA frame."""

    if not data:
        raise DecodeFailure("Empty image payload")
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise DecodeFailure("Failed to decode the image payload")
    if image.dtype != np.uint8:
        image = (image >> 8).astype(np.uint8)
    return bgr_to_rgba(image)
