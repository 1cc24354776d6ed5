"""Mapping from analysis errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from pixelaudit.core.errors import (
    AnalysisCancelled,
    AnalysisError,
    ContextUnavailable,
    DecodeFailure,
    ExternalServiceFailure,
    ExternalServiceTimeout,
    InvalidExclusionGeometry,
    MalformedBuffer,
    MediaTooLong,
    NoAnalyzableContent,
    UnsupportedMediaType,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
STATUS_CODES: tuple[tuple[type[AnalysisError], int], ...] = (
    (InvalidExclusionGeometry, 400),
    (MalformedBuffer, 400),
    (MediaTooLong, 413),
    (UnsupportedMediaType, 415),
    (DecodeFailure, 422),
    (NoAnalyzableContent, 422),
    (ExternalServiceTimeout, 504),
    (ExternalServiceFailure, 502),
    (AnalysisCancelled, 409),
    (ContextUnavailable, 500),
)


def status_for(exc: AnalysisError) -> int:
    for kind, status in STATUS_CODES:
        if isinstance(exc, kind):
            return status
    return 500


def to_http_exception(exc: AnalysisError) -> HTTPException:
    status = status_for(exc)
    if status >= 500:
        logger.exception("Analysis failed", exc_info=exc)
    else:
        logger.info("Analysis rejected (%d): %s", status, exc)
    return HTTPException(status_code=status, detail=str(exc))
