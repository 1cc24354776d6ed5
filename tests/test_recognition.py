import threading
import time

import numpy as np
import pytest

from pixelaudit.core.errors import (
    AnalysisCancelled,
    ExternalServiceFailure,
    ExternalServiceTimeout,
    InvalidExclusionGeometry,
)
from pixelaudit.core.services import tesseract as tess
from pixelaudit.core.services.recognition import RecognitionJob, recognize_region
from pixelaudit.core.types import ExcludedArea


class FakeRecognizer:
    def __init__(self, text="hello", error=None, block=False):
        self.text = text
        self.error = error
        self.block = block
        self.seen = None
        self.timeout = None
        self.thread = None
        self.terminated = threading.Event()

    def recognize(self, image, timeout=None):
        self.seen = image
        self.timeout = timeout
        self.thread = threading.current_thread()
        if self.block:
            self.terminated.wait(5)
        if self.error is not None:
            raise self.error
        return self.text

    def terminate(self):
        self.terminated.set()


def _frame():
    frame = np.zeros((10, 10, 4), dtype=np.uint8)
    frame[..., 3] = 255
    return frame


def test_recognize_region_returns_text_and_terminates():
    rec = FakeRecognizer(text="ABC 123")
    text = recognize_region(rec, _frame(), ExcludedArea(2, 3, 4, 5))
    assert text == "ABC 123"
    assert rec.seen.shape == (5, 4, 4)
    assert rec.terminated.is_set()


def test_timeout():
    rec = FakeRecognizer(block=True)
    start = time.monotonic()
    with pytest.raises(ExternalServiceTimeout) as excinfo:
        recognize_region(rec, _frame(), ExcludedArea(0, 0, 5, 5), timeout=0.2)
    assert time.monotonic() - start < 2.0
    assert "timed out after 0.2 seconds" in str(excinfo.value)
    assert rec.terminated.is_set()
    assert rec.timeout == 0.2
    assert not rec.thread.is_alive()


def test_recognizer_error_is_external_failure():
    rec = FakeRecognizer(error=RuntimeError("engine crashed"))
    with pytest.raises(ExternalServiceFailure) as excinfo:
        recognize_region(rec, _frame(), ExcludedArea(0, 0, 5, 5))
    assert "engine crashed" in str(excinfo.value)
    assert rec.terminated.is_set()


def test_cancel_from_another_thread():
    rec = FakeRecognizer(block=True)
    job = RecognitionJob(rec, timeout=5.0)
    timer = threading.Timer(0.1, job.cancel)
    timer.start()
    try:
        with pytest.raises(AnalysisCancelled):
            job.run(_frame(), ExcludedArea(0, 0, 5, 5))
    finally:
        timer.cancel()
    assert job.cancelled
    assert rec.terminated.is_set()
    assert not rec.thread.is_alive()


@pytest.mark.parametrize("area", [ExcludedArea(0, 0, 0, 5), ExcludedArea(0, 0, 5, -1), ExcludedArea(50, 50, 5, 5)])
def test_invalid_area(area):
    rec = FakeRecognizer()
    with pytest.raises(InvalidExclusionGeometry):
        recognize_region(rec, _frame(), area)
    assert rec.seen is None
    assert rec.terminated.is_set()


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        RecognitionJob(FakeRecognizer(), timeout=0)


def test_tesseract_recognizer_uses_pytesseract(monkeypatch):
    calls = {}

    def _image_to_string(image, lang, config, timeout):
        calls["timeout"] = timeout
        calls["size"] = image.size
        calls["mode"] = image.mode
        calls["lang"] = lang
        return "TEXT\n"

    monkeypatch.setattr(tess.pytesseract, "image_to_string", _image_to_string)
    rec = tess.TesseractRecognizer(language="eng")
    assert recognize_region(rec, _frame(), ExcludedArea(0, 0, 6, 4)) == "TEXT\n"
    assert calls == {"timeout": 5.0, "size": (6, 4), "mode": "RGB", "lang": "eng"}

    # terminated by recognize_region
    with pytest.raises(AnalysisCancelled):
        rec.recognize(_frame())


def test_tesseract_availability(monkeypatch):
    def _missing():
        raise tess.pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(tess.pytesseract, "get_tesseract_version", _missing)
    assert tess.TesseractRecognizer.is_available() is False
    monkeypatch.setattr(tess.pytesseract, "get_tesseract_version", lambda: "5.3.0")
    assert tess.TesseractRecognizer.is_available() is True
