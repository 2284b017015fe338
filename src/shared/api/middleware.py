"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.

Every error leaves the service as ``{"error": {"code": ..., "message": ...}}``
(plus ``field`` for validation errors). Internal causes are logged, never
returned.
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from src.core import ApplicationException, ValidationException
from src.shared.infrastructure.logging import get_context_logger, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

_HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    field: Optional[str] = None
) -> JSONResponse:
    """Render the standard error envelope."""
    error = {"code": code, "message": message}
    if field:
        error["field"] = field
    return JSONResponse(status_code=status_code, content={"error": error})


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    An incoming ``X-Correlation-ID`` is reused; otherwise one is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all requests and responses.

    Provides audit trail and debugging information.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", None)
        request_logger = get_context_logger(__name__, correlation_id)
        start_time = time.perf_counter()

        request_logger.debug(
            "Request started",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                "Request failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error_type": type(e).__name__,
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        request_logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "principal_id": getattr(request.state, "principal_id", None),
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


async def application_exception_handler(
    request: Request,
    exc: ApplicationException
) -> JSONResponse:
    """Render domain and application errors with their own code and status."""
    correlation_id = getattr(request.state, "correlation_id", None)

    if exc.status_code >= 500:
        logger.error(
            "Application error",
            extra={
                "correlation_id": correlation_id,
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "error_message": exc.message
            }
        )
        return error_response(500, "INTERNAL_ERROR", "Internal server error")

    logger.info(
        "Request rejected",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_code": exc.code,
        }
    )
    field = exc.field if isinstance(exc, ValidationException) else None
    return error_response(exc.status_code, exc.code, exc.message, field)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Map request parsing failures to ``400 VALIDATION_ERROR``."""
    errors = exc.errors()
    first = errors[0] if errors else {}

    # loc is ("body", "title"), ("query", "limit"), ...; drop the source part
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    field = ".".join(loc) or None
    message = first.get("msg", "Invalid request")

    logger.info(
        "Request validation failed",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", None),
            "path": request.url.path,
            "field": field,
            "error_count": len(errors)
        }
    )
    return error_response(400, "VALIDATION_ERROR", message, field)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Framework-raised HTTP errors (unknown route, wrong method) in the standard envelope."""
    if exc.status_code >= 500:
        code = "INTERNAL_ERROR"
    else:
        code = _HTTP_ERROR_CODES.get(exc.status_code, "VALIDATION_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns a generic ``500 INTERNAL_ERROR``; details stay in the logs.
    """
    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        },
        exc_info=exc
    )
    return error_response(500, "INTERNAL_ERROR", "Internal server error")
