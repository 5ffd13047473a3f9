"""
FastAPI exception handlers.

Every failure leaves the service as a JSON body whose ``error`` key is a
user-safe message string. FeedLensError codes are resolved through the
registry; framework errors are mapped onto registry codes as well.
"""

import logging
from typing import Any, Dict

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedlens.core.errors import FeedLensError
from feedlens.core.errors.registry import ErrorEntry, error_registry

logger = logging.getLogger(__name__)


def _body(entry: ErrorEntry, **extra: Any) -> Dict[str, Any]:
    return {
        "error": entry.safe_message,
        "code": entry.code,
        "title": entry.title,
        "retryable": entry.retryable,
        "remediation": entry.remediation,
        **extra,
    }


async def feedlens_error_handler(request: Request, exc: FeedLensError) -> JSONResponse:
    """Convert FeedLensError into a structured JSON response."""
    entry = error_registry.get(exc.code)

    if entry is None:
        logger.error(
            "unregistered_error_code",
            extra={"error.code": exc.code, "error.message": exc.detail},
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred.",
                "code": exc.code,
                "retryable": False,
                "remediation": [],
            },
        )

    log_extra = {
        "error.code": exc.code,
        "error.kind": type(exc).__name__,
        "error.message_safe": entry.safe_message,
        "error.message": exc.detail,
        "error.retryable": entry.retryable,
        "http.path": request.url.path,
        **{f"error.ctx.{k}": v for k, v in exc.context.items()},
    }
    _severity_to_log_fn(entry.severity)(entry.title, extra=log_extra)

    return JSONResponse(status_code=entry.http_status, content=_body(entry, **exc.payload))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI request validation failures onto FL-API-001."""
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return await feedlens_error_handler(
        request,
        FeedLensError("FL-API-001", detail=f"{len(details)} validation error(s)", payload={"details": details}),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures surface as FL-DB-001."""
    return await feedlens_error_handler(
        request,
        FeedLensError("FL-DB-001", detail=f"{type(exc).__name__}: {exc}"),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep plain HTTPExceptions in the ``{error: message}`` shape."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return await feedlens_error_handler(request, FeedLensError("FL-API-002", detail=request.url.path))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log with traceback, answer with FL-SYS-001."""
    logger.exception("unhandled_exception", extra={"http.path": request.url.path})
    return await feedlens_error_handler(request, FeedLensError("FL-SYS-001", detail=repr(exc)))


def _severity_to_log_fn(severity: str):
    """Map registry severity to logger method."""
    return {
        "DEBUG": logger.debug,
        "INFO": logger.info,
        "WARN": logger.warning,
        "ERROR": logger.error,
        "CRITICAL": logger.critical,
    }.get(severity, logger.error)
