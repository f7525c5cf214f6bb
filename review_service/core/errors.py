# Error types and FastAPI error handlers

from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from review_service.core.logger import logger


class ErrorResponse(Exception):
    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ReviewServiceError(Exception):
    """Base class for domain errors raised below the HTTP edge."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ReviewServiceError):
    status_code = 404


class StorageError(ReviewServiceError):
    """A read or write against the review or statistics store failed."""


class QueueError(ReviewServiceError):
    """A job could not be enqueued or moved between queue states."""


class ExternalServiceError(ReviewServiceError):
    """The translation provider or the CDN rejected or did not answer a call."""

    status_code = 502


class IterationCeilingError(ReviewServiceError):
    """Pagination ran past its iteration cap. Fatal for the run, never retried."""


class ConfigurationError(ReviewServiceError):
    """A required setting (API key, endpoint, database name...) is missing or invalid."""


class InvalidCursorError(ReviewServiceError, ValueError):
    """A pagination token is malformed or was issued for a different index."""

    status_code = 422


def error_response_handler(request: Request, exc: ErrorResponse):
    logger.error(
        f"Error: {exc.message}",
        metadata={
            "event": "error_response",
            "status_code": exc.status_code,
            **exc.details,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


def service_error_handler(request: Request, exc: ReviewServiceError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{type(exc).__name__}: {exc.message}",
        metadata={
            "event": "service_error",
            "status_code": exc.status_code,
            "path": request.url.path,
            **exc.details,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(
        f"HTTPException: {exc.detail}",
        metadata={"event": "http_exception", "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


class ErrorResponseModel(BaseModel):
    error: str
    details: Optional[dict] = None
