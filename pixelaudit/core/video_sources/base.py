"""Frame source abstractions.

The sampler pulls frames by timestamp through a small interface (`FrameSource`)
so decoding (OpenCV, in-memory buffers, ...) can be swapped without touching the
analysis code. Every frame leaves a source as an RGBA uint8 array.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import cv2
import numpy as np

from pixelaudit.core.errors import ContextUnavailable, DecodeFailure
from pixelaudit.core.media import as_rgba, bgr_to_rgba
from pixelaudit.core.types import Frame

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Base interface for anything that can produce a frame for a timestamp."""

    @property
    @abstractmethod
    def width(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def height(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def duration(self) -> float:
        """Source duration in seconds."""

        raise NotImplementedError

    @abstractmethod
    def read_at(self, timestamp: float) -> Frame:
        """Seek to ``timestamp`` (seconds) and return that frame, or raise `DecodeFailure`."""

        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release any underlying resources."""

        raise NotImplementedError

    def __enter__(self) -> FrameSource:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


class OpenCVVideoSource(FrameSource):
    """A `FrameSource` backed by `cv2.VideoCapture` on a file path."""

    def __init__(self, path: str) -> None:
        self._path = path
        self.cap = cv2.VideoCapture(path)
        if not self.cap.isOpened():
            self.cap.release()
            raise DecodeFailure(f"Failed to open video source: {path}")

        fps = float(self.cap.get(cv2.CAP_PROP_FPS) or 0.0)
        frame_count = float(self.cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
        if not math.isfinite(fps) or fps <= 0.0 or frame_count <= 0.0:
            self.cap.release()
            raise DecodeFailure(f"Failed to read video metadata: {path}")

        self._fps = fps
        self._duration = frame_count / fps
        self._width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        self._height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        if self._width <= 0 or self._height <= 0:
            self.cap.release()
            raise ContextUnavailable(f"Video has no pixel area to read: {path}")
        logger.info(
            "Opened video %s (%sx%s, %.2f fps, %.3fs)",
            path,
            self._width,
            self._height,
            self._fps,
            self._duration,
        )

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def fps(self) -> float:
        return self._fps

    def read_at(self, timestamp: float) -> Frame:
        self.cap.set(cv2.CAP_PROP_POS_MSEC, float(timestamp) * 1000.0)
        ok, frame = self.cap.read()
        if not ok or frame is None:
            raise DecodeFailure(f"Failed to decode frame at {timestamp:.3f}s of {self._path}")
        return bgr_to_rgba(frame)

    def close(self) -> None:
        """Release the underlying OpenCV capture."""

        self.cap.release()


class InMemoryVideoSource(FrameSource):
    """Frames already decoded by the caller, played back at a fixed FPS."""

    def __init__(self, frames: Sequence[np.ndarray], fps: float) -> None:
        if not frames:
            raise DecodeFailure("No frames supplied")
        if fps <= 0:
            raise ValueError("fps must be > 0")
        self._frames = [as_rgba(f) for f in frames]
        self._fps = float(fps)
        self._height, self._width = self._frames[0].shape[:2]

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def duration(self) -> float:
        return len(self._frames) / self._fps

    def read_at(self, timestamp: float) -> Frame:
        if timestamp < 0:
            raise DecodeFailure(f"Negative timestamp {timestamp}")
        # Small epsilon so i/fps maps back to index i despite float rounding.
        index = int(math.floor(float(timestamp) * self._fps + 1e-9))
        if index >= len(self._frames):
            raise DecodeFailure(f"Timestamp {timestamp:.3f}s is past the end of the clip")
        return self._frames[index]

    def close(self) -> None:
        return None
