from .user import User
from .document import Document, IMMUTABLE_FIELDS
from .audit_log import AuditAction, AuditLogEntry, AuditLogImmutableError
from .document_share import DocumentShare, SharePermission

__all__ = [
    'User', 'Document', 'IMMUTABLE_FIELDS', 'AuditAction', 'AuditLogEntry',
    'AuditLogImmutableError', 'DocumentShare', 'SharePermission'
]
