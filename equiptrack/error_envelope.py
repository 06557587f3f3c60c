"""JSON error envelope `{error, code, details?}` and FastAPI exception handlers."""
from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .domain_errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)


def build_error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def build_domain_error_response(exc: DomainError) -> JSONResponse:
    """Render DomainError with its stable domain code."""
    return build_error_response(
        status_code=exc.http_status,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        headers=exc.headers,
    )


def _validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    details: list[dict[str, str]] = []
    for error in exc.errors():
        # Drop the leading "body"/"query"/"path" segment.
        location = [str(part) for part in error.get("loc", ())]
        if len(location) > 1 and location[0] in {"body", "query", "path", "header"}:
            location = location[1:]
        details.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return details


async def domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Domain error %s: %s", exc.code, exc.message)
    return build_domain_error_response(exc)


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return build_error_response(
        status_code=400,
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Invalid data",
        details=_validation_details(exc),
    )


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    return build_error_response(
        status_code=exc.status_code,
        code="HTTP_ERROR",
        message=message,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = None
    if not settings.is_production:
        details = {"stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))}
    return build_error_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR.value,
        message="Internal server error",
        details=details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
