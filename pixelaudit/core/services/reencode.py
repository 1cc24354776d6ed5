"""Crop-box geometry and re-encoding to vertical target formats.

The crop box is the largest box with the target's aspect ratio that fits the
source, centered; it can then be moved but never leaves the source frame. The
re-encoder reads every source frame, crops it, scales it to the target size and
writes it with `cv2.VideoWriter`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path

import cv2

from pixelaudit.core.errors import DecodeFailure, ExternalServiceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CropBox:
    x: float
    y: float
    width: float
    height: float


# (width, height) presets for vertical phone formats.
VERTICAL_PRESETS: dict[str, tuple[int, int]] = {
    "1080x2340": (1080, 2340),
    "1206x2622": (1206, 2622),
}


def calculate_crop_box(video_dims: tuple[float, float], target_dims: tuple[float, float]) -> CropBox:
    vw, vh = float(video_dims[0]), float(video_dims[1])
    tw, th = float(target_dims[0]), float(target_dims[1])
    if vw <= 0 or vh <= 0 or tw <= 0 or th <= 0:
        raise ValueError("dimensions must be > 0")

    target_aspect = tw / th
    if vw / vh > target_aspect:
        # Source is wider: keep full height.
        crop_h = vh
        crop_w = crop_h * target_aspect
    else:
        crop_w = vw
        crop_h = crop_w / target_aspect
    return CropBox(x=(vw - crop_w) / 2.0, y=(vh - crop_h) / 2.0, width=crop_w, height=crop_h)


def move_crop_box(box: CropBox, x: float, y: float, video_dims: tuple[float, float]) -> CropBox:
    """Move ``box`` to ``(x, y)``, constrained to stay inside the video."""

    vw, vh = float(video_dims[0]), float(video_dims[1])
    nx = max(0.0, min(float(x), vw - box.width))
    ny = max(0.0, min(float(y), vh - box.height))
    return replace(box, x=nx, y=ny)


class OpenCVReencoder:
    """Crop + scale every frame of a video into a new file."""

    def __init__(self, fourcc: str = "mp4v", fps: float | None = None) -> None:
        self.fourcc = fourcc
        self.fps = fps

    def reencode(
        self,
        src: str | Path,
        crop: CropBox,
        target: tuple[int, int],
        dst: str | Path,
    ) -> int:
        """Write the cropped video to ``dst`` and return the number of frames written."""

        cap = cv2.VideoCapture(str(src))
        if not cap.isOpened():
            cap.release()
            raise DecodeFailure(f"Failed to open video source: {src}")

        fps = self.fps or float(cap.get(cv2.CAP_PROP_FPS) or 0.0) or 30.0
        tw, th = int(target[0]), int(target[1])
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        writer = cv2.VideoWriter(str(dst), cv2.VideoWriter_fourcc(*self.fourcc), fps, (tw, th))
        if not writer.isOpened():
            cap.release()
            writer.release()
            raise ExternalServiceFailure(f"Could not open video writer for {dst}")

        x0, y0 = int(round(crop.x)), int(round(crop.y))
        x1, y1 = int(round(crop.x + crop.width)), int(round(crop.y + crop.height))
        written = 0
        try:
            while True:
                ok, frame = cap.read()
                if not ok or frame is None:
                    break
                region = frame[y0:y1, x0:x1]
                if region.size == 0:
                    raise ExternalServiceFailure("Crop box lies outside the video frame")
                writer.write(cv2.resize(region, (tw, th), interpolation=cv2.INTER_AREA))
                written += 1
        except cv2.error as exc:
            raise ExternalServiceFailure(f"Error processing video: {exc}") from exc
        finally:
            cap.release()
            writer.release()

        logger.info("Re-encoded %d frames from %s to %s (%dx%d)", written, src, dst, tw, th)
        return written
