import time
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from jobqueue.config.logging import add_request_context, get_logger

logger = get_logger(__name__)


class JobQueueException(Exception):
    """Base exception for errors that reach the HTTP surface."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class JobNotFoundError(JobQueueException):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, job_id: int):
        super().__init__("Job not found", {"job_id": job_id})


class InvalidTriggerCodeError(JobQueueException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Missing or invalid trigger code")


class StorageError(JobQueueException):
    """A job repository call failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# Errors internal to the runner; they never reach a client


class ExecutionError(Exception):
    """A job failed for a reason attributable to its handler or its dispatch."""

    def __init__(self, job_id: int, message: str):
        self.job_id = job_id
        self.message = message
        super().__init__(f"Job execution error: {message}")


class InfrastructureError(Exception):
    """A job task did not run to completion for an unexpected reason."""


class HandlerError(Exception):
    """Raised by a handler when something outside the job itself is broken."""


class DuplicateHandlerError(RuntimeError):
    """Raised by a strict registry when a kind already has a handler."""


# Response envelopes


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response envelope."""
    return {
        "ok": False,
        "error": {
            "message": message,
            "code": status_code,
            "details": details or {},
        },
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def create_success_response(
    data: Any, message: str | None = None, request_id: str | None = None
) -> dict[str, Any]:
    """Create standardized success response envelope."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _error_json(
    request: Request,
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(status_code, message, details, request_id),
    )


async def job_queue_exception_handler(
    request: Request, exc: JobQueueException
) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        exception=type(exc).__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )
    return _error_json(request, exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail)
    return _error_json(request, exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.info("Request validation failed", errors=len(errors))
    return _error_json(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        {"errors": errors},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exception=type(exc).__name__,
        message=str(exc),
        exc_info=True,
    )
    return _error_json(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, bind it to the log context and log each request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        add_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
