"""Error kinds raised by the analysis engine.

Validation errors are raised before any pixel work starts. Everything is
terminal for the run that raised it; callers may simply re-invoke.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for all analysis failures."""


class UnsupportedMediaType(AnalysisError):
    """The uploaded file is not of an accepted media class."""


class MediaTooLong(AnalysisError):
    """Video duration exceeds the configured ceiling."""

    def __init__(self, duration: float, limit: float) -> None:
        self.duration = float(duration)
        self.limit = float(limit)
        super().__init__(
            f"Video is too long ({self.duration:.2f}s). "
            f"Please select a video {self.limit:g} seconds or shorter."
        )


class DecodeFailure(AnalysisError):
    """Image/video metadata or a specific frame could not be decoded."""


class NoAnalyzableContent(AnalysisError):
    """Every pixel was transparent or excluded."""


class InvalidExclusionGeometry(AnalysisError, ValueError):
    """An exclusion area is missing fields, mistyped, or over the area limit."""


class MalformedBuffer(AnalysisError, ValueError):
    """Pixel buffer length does not match its declared dimensions."""


class ContextUnavailable(AnalysisError):
    """No pixel-buffer read/write context could be obtained."""


class AnalysisCancelled(AnalysisError):
    """The run (or an external operation) was cancelled by the user."""


class ExternalServiceError(AnalysisError):
    """Base class for failures of delegated external collaborators."""


class ExternalServiceTimeout(ExternalServiceError):
    """The external operation did not finish before its deadline."""


class ExternalServiceFailure(ExternalServiceError):
    """The external operation failed."""
