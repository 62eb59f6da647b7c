"""
Request pipeline for the document API.

Registered so that requests pass, in order: security headers, input
sanitization, rate limiting. ID validation and audit logging run as route
dependencies (see `dependencies.py`).
"""

import json
import logging
from typing import Callable
from urllib.parse import parse_qsl, urlencode

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from modules.documents.errors import RateLimitedError
from modules.security.rate_limiter import RateLimiter
from modules.security.sanitize import escape_string, sanitize_value

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-XSS-Protection": "1; mode=block",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

MSG_RATE_LIMITED = "Trop de requêtes. Veuillez réessayer plus tard."


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response


class InputSanitizationMiddleware:
    """
    HTML-escape query values and JSON bodies before any handler sees them.

    Multipart bodies are left alone: they carry the binary upload.
    """

    def __init__(self, app: ASGIApp, path_prefix: str = "/documents"):
        self.app = app
        self.path_prefix = path_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        query_string = scope.get("query_string", b"")
        if query_string:
            pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
            scope["query_string"] = urlencode(
                [(key, escape_string(value)) for key, value in pairs]
            ).encode("latin-1")

        content_type = Headers(scope=scope).get("content-type", "")
        if scope["method"] != "GET" and content_type.split(";")[0].strip() == "application/json":
            body = await _read_body(receive)
            body = _sanitize_json_body(body)
            scope["headers"] = [
                (name, value) for name, value in scope["headers"] if name != b"content-length"
            ] + [(b"content-length", str(len(body)).encode("latin-1"))]
            receive = _replay(body, receive)

        await self.app(scope, receive, send)


def _sanitize_json_body(body: bytes) -> bytes:
    if not body:
        return body
    try:
        payload = json.loads(body)
    except ValueError:
        # Left as-is; body validation on the route rejects it
        return body
    return json.dumps(sanitize_value(payload)).encode("utf-8")


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP limit on the document routes only."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, path_prefix: str = "/documents"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, retry_after = self.limiter.check(client_ip)
        if not allowed:
            logger.warning(
                "Rate limit exceeded: %s on %s %s",
                client_ip, request.method, request.url.path,
            )
            error = RateLimitedError(MSG_RATE_LIMITED, retry_after)
            return JSONResponse(
                status_code=error.status_code,
                content={"message": error.message},
                headers={"Retry-After": str(error.retry_after)},
            )
        return await call_next(request)
