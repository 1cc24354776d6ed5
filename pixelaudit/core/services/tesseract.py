"""Tesseract-backed text recognizer."""

from __future__ import annotations

import logging

import numpy as np
import pytesseract
from PIL import Image

from pixelaudit.core.errors import AnalysisCancelled
from pixelaudit.core.media import as_rgba
from pixelaudit.core.types import Frame

logger = logging.getLogger(__name__)


class TesseractRecognizer:
    """Wraps `pytesseract.image_to_string` behind the `TextRecognizer` contract."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "",
        tesseract_cmd: str | None = None,
    ) -> None:
        self.language = language
        self.config = config
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._terminated = False

    @staticmethod
    def is_available() -> bool:
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False

    def recognize(self, image: Frame, timeout: float | None = None) -> str:
        """OCR ``image``; pytesseract kills the tesseract process after ``timeout`` seconds."""

        if self._terminated:
            raise AnalysisCancelled("Recognizer was terminated.")
        rgb = np.ascontiguousarray(as_rgba(image)[..., :3])
        text = pytesseract.image_to_string(
            Image.fromarray(rgb),
            lang=self.language,
            config=self.config,
            timeout=timeout or 0,
        )
        logger.debug("Recognized %d characters", len(text))
        return text

    def terminate(self) -> None:
        self._terminated = True
