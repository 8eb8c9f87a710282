"""
Exception handlers for the tallytrack API.

Domain errors raised by the services are translated here into the standard
error body; routes never build error responses themselves.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.schemas import ErrorResponse
from common.logger import get_logger
from domain.errors import (
    AlreadyTrackingError,
    NotFoundError,
    NotTrackingError,
    TaskMoveError,
    TrackingError,
    TransactionFailure,
)

log = get_logger("api")


class ErrorType(str, Enum):
    VALIDATION_ERROR = "validation_error"
    RESOURCE_NOT_FOUND = "resource_not_found"
    NOT_TRACKING = "not_tracking"
    ALREADY_TRACKING = "already_tracking"
    CONFLICT = "conflict"
    TRANSACTION_FAILURE = "transaction_failure"
    REQUEST_ERROR = "request_error"
    SERVER_ERROR = "server_error"


# checked in order; subclasses before TrackingError
_DOMAIN_ERRORS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, ErrorType.RESOURCE_NOT_FOUND),
    (NotTrackingError, status.HTTP_409_CONFLICT, ErrorType.NOT_TRACKING),
    (AlreadyTrackingError, status.HTTP_409_CONFLICT, ErrorType.ALREADY_TRACKING),
    (TaskMoveError, status.HTTP_409_CONFLICT, ErrorType.CONFLICT),
    (TransactionFailure, status.HTTP_503_SERVICE_UNAVAILABLE, ErrorType.TRANSACTION_FAILURE),
    (TrackingError, status.HTTP_400_BAD_REQUEST, ErrorType.REQUEST_ERROR),
)


def error_response(
    request: Request,
    status_code: int,
    error_type: ErrorType,
    message: str,
) -> JSONResponse:
    request_id: Optional[str] = getattr(request.state, "request_id", None)
    body = ErrorResponse(
        status_code=status_code,
        error_type=error_type.value,
        message=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers for the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(TrackingError)
    async def tracking_error_handler(request: Request, exc: TrackingError):
        for cls, status_code, error_type in _DOMAIN_ERRORS:
            if isinstance(exc, cls):
                break
        if status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            log.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return error_response(request, status_code, error_type, str(exc))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        error_type = ErrorType.SERVER_ERROR
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            error_type = ErrorType.RESOURCE_NOT_FOUND
        elif 400 <= exc.status_code < 500:
            error_type = ErrorType.REQUEST_ERROR
        return error_response(request, exc.status_code, error_type, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # e.g. {"action": "pause"}; reported as 400 like any malformed body
        problems = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error.get("loc", []) if loc != "body")
            problems.append(f"{field}: {error.get('msg', '')}" if field else error.get("msg", ""))
        message = "Invalid request. " + "; ".join(problems) if problems else "Invalid request."
        return error_response(
            request, status.HTTP_400_BAD_REQUEST, ErrorType.VALIDATION_ERROR, message
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        # service-level input checks, e.g. a blank title after stripping
        return error_response(
            request, status.HTTP_400_BAD_REQUEST, ErrorType.VALIDATION_ERROR, str(exc)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        log.exception("Uncaught exception on %s %s", request.method, request.url.path)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorType.SERVER_ERROR,
            "An unexpected error occurred.",
        )
