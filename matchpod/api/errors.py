"""
================================================================================
FILE: matchpod/api/errors.py
================================================================================

PURPOSE:
    Global exception handlers. Every error leaves the API in one shape:

        {"success": false, "error": {"code": "...", "message": "...", ...}}

HANDLERS:
    - RateLimitError          429 + X-RateLimit-* / Retry-After headers
    - AppError (subclasses)   err.status_code, details hidden in production
    - RequestValidationError  400 VALIDATION_ERROR with field list
    - HTTPException           404 NOT_FOUND "Route GET /x not found", others HTTP_<status>
    - Exception               500 INTERNAL_ERROR, message hidden in production

KEY FACTS:
    - Every handled error is logged with method, path and request id
    - Register once in create_app() via register_exception_handlers()
"""

import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from matchpod.config.settings import Settings
from matchpod.core.exceptions import AppError, RateLimitError

logger = logging.getLogger(__name__)


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "method": request.method,
        "url": str(request.url.path),
        "request_id": getattr(request.state, "request_id", "unknown"),
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def error_body(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message, **extra}}


def rate_limit_response(error: RateLimitError) -> JSONResponse:
    """429 response for a RateLimitError (used by handlers and middleware)."""
    details = error.details or {}
    reset_after = str(details.get("reset_after", 0))
    return JSONResponse(
        status_code=429,
        content=error_body(
            "RATE_LIMIT_EXCEEDED",
            error.message,
            retry_after=details.get("reset_after", 0),
        ),
        headers={
            "X-RateLimit-Limit": str(details.get("limit", 0)),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": reset_after,
            "Retry-After": reset_after,
        },
    )


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Attach all global exception handlers to the app."""
    is_production = settings.is_production

    @app.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError):
        logger.warning(f"Rate limit exceeded: {exc.message}", extra=_request_context(request))
        return rate_limit_response(exc)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        ctx = _request_context(request)
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Application error [request_id={ctx['request_id']}] "
            f"{ctx['method']} {ctx['url']}: {exc}",
            extra=ctx,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.to_dict(include_details=not is_production)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", ""),
                "code": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        logger.info(f"Request validation failed: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=400,
            content=error_body("VALIDATION_ERROR", "Validation failed", details=details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content=error_body(
                    "NOT_FOUND",
                    f"Route {request.method} {request.url.path} not found",
                ),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(f"HTTP_{exc.status_code}", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        ctx = _request_context(request)
        logger.error(
            f"Unhandled error in request [request_id={ctx['request_id']}] "
            f"{ctx['method']} {ctx['url']}: {str(exc)}",
            exc_info=exc,
            extra=ctx,
        )

        if is_production:
            body = error_body("INTERNAL_ERROR", "Internal server error")
        else:
            body = error_body(
                "INTERNAL_ERROR",
                str(exc),
                stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            )
        return JSONResponse(status_code=500, content=body)
