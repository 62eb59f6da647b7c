"""
Error taxonomy for the document service.

Every error carries a human-readable `message` and the HTTP status it maps
to. `setup_exception_handlers` renders them as `{"message": ...}`.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(DocumentError):
    """Malformed identifier, upload or request body."""
    status_code = status.HTTP_400_BAD_REQUEST


class SecurityRejection(DocumentError):
    """Upload refused by the active-content heuristics."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DocumentError):
    status_code = status.HTTP_404_NOT_FOUND


class RateLimitedError(DocumentError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class InternalError(DocumentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ProvenanceError(Exception):
    """Embedding failed; callers fall back to the original bytes."""
    pass


INTERNAL_ERROR_MESSAGE = "Erreur interne du serveur"


def _message_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


async def document_error_handler(request: Request, exc: DocumentError) -> JSONResponse:
    logger.warning(
        "%s on %s %s: %s",
        type(exc).__name__, request.method, request.url.path, exc.message,
    )
    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        return _message_response(exc.status_code, INTERNAL_ERROR_MESSAGE)
    return _message_response(exc.status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"
    return _message_response(exc.status_code, message, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first failing field only."""
    errors = exc.errors()
    if not errors:
        return _message_response(status.HTTP_400_BAD_REQUEST, "Requête invalide")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header"))
    message = f"Requête invalide: {location} - {first.get('msg', '')}" if location else f"Requête invalide: {first.get('msg', '')}"
    return _message_response(status.HTTP_400_BAD_REQUEST, message)


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Repository and audit failures surface as InternalError."""
    logger.error(
        "Database error on %s %s",
        request.method, request.url.path,
        exc_info=exc,
    )
    return await document_error_handler(request, InternalError(str(exc)))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the user middleware stack, so the security headers are set here
    from modules.security.middleware import SECURITY_HEADERS

    # Full traceback goes to the log, never to the caller
    logger.error(
        "Unhandled exception on %s %s",
        request.method, request.url.path,
        exc_info=exc,
    )
    return _message_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE, dict(SECURITY_HEADERS)
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocumentError, document_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
