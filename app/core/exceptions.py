"""
Custom HTTP exceptions and global exception handlers for TaskFlow.
All application-level errors are defined here for consistency.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


# ── Custom exception classes ──────────────────────────────────────────────────

class TaskFlowException(Exception):
    """Base exception for all TaskFlow domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "TASKFLOW_ERROR"
        super().__init__(detail)


class ValidationException(TaskFlowException):
    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
        error_code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, error_code=error_code)


class FileTooLargeException(ValidationException):
    def __init__(self, max_mb: int) -> None:
        super().__init__(
            detail=f"File exceeds maximum allowed size of {max_mb} MB",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            error_code="FILE_TOO_LARGE",
        )


class NotFoundException(TaskFlowException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class PermissionDeniedException(TaskFlowException):
    def __init__(self, detail: str = "You do not have permission to perform this action") -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="PERMISSION_DENIED",
        )


class ConflictException(TaskFlowException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT",
        )


class UpstreamUnavailableException(TaskFlowException):
    def __init__(self, detail: str = "An upstream service is unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="UPSTREAM_UNAVAILABLE",
        )


class UnauthorizedException(TaskFlowException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidTokenException(TaskFlowException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TOKEN",
        )


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
    )


async def taskflow_exception_handler(
    request: Request, exc: TaskFlowException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": errors,
        },
    )


async def stale_data_exception_handler(
    request: Request, exc: StaleDataError
) -> JSONResponse:
    logger.warning("Concurrent modification rejected on %s: %s", request.url.path, exc)
    return _error_response(
        status_code=status.HTTP_409_CONFLICT,
        detail="The resource was modified concurrently, reload and retry",
        error_code="CONFLICT",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(TaskFlowException, taskflow_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StaleDataError, stale_data_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
