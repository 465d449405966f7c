"""Error Handlers — global exception handlers rendering the response envelope.

Invariants:
    - ApiError → its own status and to_response() envelope
    - RequestValidationError → 400 "Validation failed" with [{field, message}]
    - HTTPException → envelope with the exception's status and detail as message
    - Exception (catch-all) → 500 "Internal server error", details only in logs

Design Decisions:
    - Four-layer handler: domain (ApiError), validation (Pydantic), framework
      (HTTPException, e.g. 404/405 from routing), catch-all (Exception)
    - Routes raise, never build error responses themselves
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cctv_api.core.envelope import failure
from cctv_api.core.errors import ApiError, ErrorSeverity
from cctv_api.schemas.common import format_validation_errors

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_api_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_exception_handler(app)
    _register_generic_error_handler(app)


def _register_api_error_handler(app: FastAPI) -> None:

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        """Handle all domain/infrastructure errors."""
        logger.log(
            _LOG_LEVELS[exc.severity],
            "%s %s -> %s", request.method, request.url.path, exc.message,
            extra={
                "error_code": exc.code,
                "error_category": exc.category.value,
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.http_status,
            },
        )
        headers = None
        if exc.context.retry_after_seconds is not None:
            headers = {"Retry-After": str(exc.context.retry_after_seconds)}
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(), headers=headers,
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure(
                "Validation failed",
                errors=format_validation_errors(exc.errors()),
                code="VALIDATION_ERROR",
            ),
        )


def _register_http_exception_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(message),
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all 500 that never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure("Internal server error", code="INTERNAL_ERROR"),
        )
