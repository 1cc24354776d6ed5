"""Text recognition over a user-selected region, with a deadline and cancel.

The recognizer itself is an external collaborator (`TextRecognizer`). It runs on
a daemon worker thread; the caller waits on a single-slot queue so a timeout or
a cancel request returns control immediately. The recognizer gets the same
deadline so it can stop its own work, is terminated on every exit path, and the
worker is joined before `run` returns.
"""

from __future__ import annotations

import logging
import threading
import time
from queue import Empty, Queue
from typing import Protocol

from pixelaudit.core.analytics.adjustments import crop_region
from pixelaudit.core.errors import (
    AnalysisCancelled,
    ExternalServiceFailure,
    ExternalServiceTimeout,
    InvalidExclusionGeometry,
)
from pixelaudit.core.types import ExcludedArea, Frame

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
_POLL_INTERVAL = 0.05
_JOIN_GRACE = 0.5


class TextRecognizer(Protocol):
    def recognize(self, image: Frame, timeout: float | None = None) -> str: ...

    def terminate(self) -> None: ...


class RecognitionJob:
    """One recognition call that can be cancelled from another thread."""

    def __init__(self, recognizer: TextRecognizer, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.recognizer = recognizer
        self.timeout = float(timeout)
        self._cancel = threading.Event()
        self._worker: threading.Thread | None = None

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self, frame: Frame, area: ExcludedArea) -> str:
        results: Queue[tuple[str | None, Exception | None]] = Queue(maxsize=1)

        try:
            if area.width <= 0 or area.height <= 0:
                raise InvalidExclusionGeometry("Please define a valid recognition area first.")
            region = crop_region(frame, area)

            def _work() -> None:
                try:
                    results.put((self.recognizer.recognize(region, timeout=self.timeout), None))
                except Exception as exc:  # noqa: BLE001 - handed back to the waiting caller
                    results.put((None, exc))

            self._worker = threading.Thread(target=_work, daemon=True)
            deadline = time.monotonic() + self.timeout
            self._worker.start()
            while True:
                if self._cancel.is_set():
                    raise AnalysisCancelled("Text recognition cancelled by user.")
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ExternalServiceTimeout(
                        f"Text recognition timed out after {self.timeout:g} seconds."
                    )
                try:
                    text, error = results.get(timeout=min(_POLL_INTERVAL, remaining))
                except Empty:
                    continue
                if error is not None:
                    raise ExternalServiceFailure(f"Text recognition failed: {error}") from error
                return text or ""
        finally:
            try:
                self.recognizer.terminate()
            except Exception:
                logger.exception("Failed to terminate text recognizer")
            worker = self._worker
            if worker is not None:
                worker.join(_JOIN_GRACE)
                if worker.is_alive():
                    logger.warning("Text recognizer still busy %.1fs after being terminated", _JOIN_GRACE)


def recognize_region(
    recognizer: TextRecognizer,
    frame: Frame,
    area: ExcludedArea,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Recognize text inside ``area`` of ``frame`` within ``timeout`` seconds."""

    return RecognitionJob(recognizer, timeout).run(frame, area)
