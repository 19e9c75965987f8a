"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.

Every failure surfaces to the caller as HTTP 500 with a ``{"error": ...}``
body; the intake form only distinguishes success from failure.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from issue_intake.core import ApplicationException, ValidationException
from issue_intake.shared.infrastructure.logging import get_logger, correlation_id_var

logger = get_logger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    The id is stored on ``request.state`` and bound to the logging context
    so every log line emitted while serving the request carries it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all requests and responses.

    Provides audit trail and debugging information.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        logger.info(
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
            logger.error(
                "Request failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        response_time = time.perf_counter() - start_time
        response.headers["X-Response-Time"] = f"{response_time:.3f}s"
        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": int(response_time * 1000)
            }
        )
        return response


def _error_response(request: Request, message: str) -> JSONResponse:
    headers = {}
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id
    return JSONResponse(status_code=500, content={"error": message}, headers=headers)


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Render a fatal pipeline error as ``{"error": message}``."""
    logger.error(
        "Triage run failed",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "details": exc.details
        }
    )
    return _error_response(request, exc.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed form payloads are fatal like any other failure."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid submission: {location} {first.get('msg', '')}".strip()

    return await application_exception_handler(
        request,
        ValidationException(message, details={"error_count": len(errors)})
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )
    return _error_response(request, str(exc) or "Server error")
