"""
================================================================================
FILE: matchpod/api/middleware.py
================================================================================

PURPOSE:
    Hardening middleware applied to every request.

    1. request_context      - request id, X-Response-Time, one access log line
    2. add_security_headers - nosniff / frame deny / HSTS / CSP ...
    3. SanitizeInputMiddleware - strips markup and script protocols from
                              JSON bodies and query strings; 413 above 10 MB

KEY FACTS:
    - Sanitization rewrites values, never keys
    - Non-JSON bodies (uploads, forms) pass through untouched
    - Invalid JSON passes through so the route's own validation reports it
"""

import json
import logging
import re
import time
from typing import Any, Awaitable, Callable
from urllib.parse import parse_qsl, urlencode

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from matchpod.config.constants import MAX_BODY_BYTES, SECURITY_HEADERS
from matchpod.utils import generate_request_id

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("matchpod.access")

CallNext = Callable[[Request], Awaitable[Response]]

# ================================================================================
# INPUT SANITIZATION
# ================================================================================

_MARKUP_CHARS = re.compile(r"[<>\"'&]")
_SCRIPT_PROTOCOLS = re.compile(r"javascript:|data:", re.IGNORECASE)


def sanitize_string(value: str) -> str:
    """Remove HTML/XML characters and javascript:/data: protocols, then trim."""
    return _SCRIPT_PROTOCOLS.sub("", _MARKUP_CHARS.sub("", value)).strip()


def sanitize_value(value: Any) -> Any:
    """Recursively sanitize strings inside lists and dicts."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_value(item) for key, item in value.items()}
    return value


def sanitize_query_string(query_string: bytes) -> bytes:
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    return urlencode([(key, sanitize_string(value)) for key, value in pairs]).encode("latin-1")


class SanitizeInputMiddleware:
    """Pure ASGI middleware so the rewritten body reaches the route untouched."""

    def __init__(self, app: ASGIApp, max_body_size: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        if scope.get("query_string"):
            scope["query_string"] = sanitize_query_string(scope["query_string"])

        if not self._is_json(scope):
            await self.app(scope, receive, send)
            return

        body = b""
        disconnected = False
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                disconnected = True
                break
            body += message.get("body", b"")
            if len(body) > self.max_body_size:
                response = JSONResponse(
                    status_code=413,
                    content={
                        "success": False,
                        "error": {"code": "PAYLOAD_TOO_LARGE", "message": "Request body too large"},
                    },
                )
                await response(scope, receive, send)
                return
            if not message.get("more_body", False):
                break

        if not disconnected:
            body = self._sanitize_body(body)
            scope["headers"] = [
                (name, value) for name, value in scope["headers"] if name != b"content-length"
            ] + [(b"content-length", str(len(body)).encode("latin-1"))]

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if disconnected:
                return {"type": "http.disconnect"}
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)

    @staticmethod
    def _is_json(scope: Scope) -> bool:
        for name, value in scope.get("headers", []):
            if name == b"content-type":
                return b"json" in value.lower()
        return False

    @staticmethod
    def _sanitize_body(body: bytes) -> bytes:
        if not body:
            return body
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return body
        return json.dumps(sanitize_value(payload)).encode("utf-8")

# ================================================================================
# SECURITY HEADERS
# ================================================================================

async def add_security_headers(request: Request, call_next: CallNext) -> Response:
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response

# ================================================================================
# REQUEST CONTEXT / ACCESS LOG
# ================================================================================

async def request_context(request: Request, call_next: CallNext) -> Response:
    """Add request ID for correlation tracking and log the request."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    request.state.request_id = request_id

    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"

    access_logger.info(
        f"{request.method} {request.url.path} {response.status_code} "
        f"{elapsed_ms:.1f}ms [{request_id}]"
    )
    return response
