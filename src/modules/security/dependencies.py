import logging
import re
from datetime import datetime, timezone

from fastapi import Depends, Request

from modules.documents.errors import ValidationError
from modules.security.sanitize import escape_string

audit_logger = logging.getLogger("audit")

_NUMERIC_ID = re.compile(r"\d+", re.ASCII)

MSG_INVALID_DOCUMENT_ID = "Format d'identifiant de document invalide"
MSG_INVALID_USER_ID = "Format d'identifiant d'utilisateur invalide"


def _parse_id(raw: str, message: str) -> int:
    value = escape_string(raw)
    if not _NUMERIC_ID.fullmatch(value):
        raise ValidationError(message)
    return int(value)


def valid_document_id(document_id: str) -> int:
    """Reject malformed ids before any repository lookup."""
    return _parse_id(document_id, MSG_INVALID_DOCUMENT_ID)


def valid_user_id(user_id: str) -> int:
    return _parse_id(user_id, MSG_INVALID_USER_ID)


def sensitive_document_id(request: Request, document_id: int = Depends(valid_document_id)) -> int:
    """Validated id for sign/download, with the request traced on the audit logger."""
    audit_logger.info(
        "Sensitive action %s %s",
        request.method, request.url.path,
        extra={
            "audit_timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", "Unknown"),
        },
    )
    return document_id
