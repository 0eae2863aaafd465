from __future__ import annotations

import logging

from fastapi import HTTPException

from balancewise.domain.exceptions import (
    AnalysisFailedError,
    DomainError,
    DuplicateKeyError,
    ImageTooLargeError,
    InvalidImageError,
    InvalidOrExpiredStateError,
    InvalidTokenError,
    NoImageProvidedError,
    NotFoundError,
    ProviderExchangeError,
    ProviderProfileError,
    UnauthorizedError,
)


logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "internal server error"

# Checked in order; subclasses come before their bases.
_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (NotFoundError, 404),
    (DuplicateKeyError, 409),
    (InvalidOrExpiredStateError, 400),
    (UnauthorizedError, 401),
    (InvalidTokenError, 401),
    (ProviderExchangeError, 502),
    (ProviderProfileError, 502),
    (AnalysisFailedError, 500),
    (ImageTooLargeError, 400),
    (InvalidImageError, 400),
    (NoImageProvidedError, 400),
)


def status_for(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def to_http_exception(exc: DomainError) -> HTTPException:
    status_code = status_for(exc)
    if status_code == 500 and not isinstance(exc, AnalysisFailedError):
        logger.error("api: internal error code=%s error=%s", exc.code, exc, exc_info=exc)
        return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": INTERNAL_MESSAGE})
    if status_code >= 500:
        logger.error("api: upstream failure code=%s error=%s", exc.code, exc, exc_info=exc)
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})
