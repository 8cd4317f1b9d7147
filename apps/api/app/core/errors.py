"""Standardized error responses across all API endpoints."""
from typing import Any

import sentry_sdk
import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.modules.progress_reports.exceptions import ConfigurationError, ValidationError


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"

logger = structlog.get_logger()


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", "unknown")


def _envelope(status_code: int, error: str, message: str, detail: Any, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error, message=message, detail=detail, request_id=request_id
        ).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = _request_id(request)

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return _envelope(
        500,
        "internal_server_error",
        "An unexpected error occurred. Our team has been notified.",
        None,
        request_id,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        # Plain-string detail stays under "detail" as FastAPI clients expect
        detail = exc.detail

    response = _envelope(exc.status_code, error, message, detail, _request_id(request))
    response.headers.update(dict(exc.headers or {}))
    return response


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Invalid component data that aborted a report."""
    request_id = _request_id(request)
    logger.warning(
        "progress_validation_error",
        error=exc.message,
        path=request.url.path,
        request_id=request_id,
        **exc.context,
    )
    return _envelope(422, "invalid_component_data", exc.message, _jsonable(exc.context), request_id)


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Component data that does not match the weight catalog; needs an upstream fix."""
    request_id = _request_id(request)
    logger.error(
        "progress_configuration_error",
        error=exc.message,
        path=request.url.path,
        request_id=request_id,
        **exc.context,
    )
    sentry_sdk.capture_exception(exc)
    return _envelope(500, "catalog_configuration_error", exc.message, _jsonable(exc.context), request_id)


def _jsonable(context: dict) -> dict:
    return {
        key: value if isinstance(value, (str, int, float, bool, list, type(None))) else str(value)
        for key, value in context.items()
    }


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConfigurationError, configuration_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)
