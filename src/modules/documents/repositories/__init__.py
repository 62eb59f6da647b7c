from .document_repository import DocumentRepository, ImmutableFieldError
from .audit_log_repository import AuditLogRepository
from .share_repository import ShareRepository
from .user_repository import UserRepository

__all__ = [
    'DocumentRepository', 'ImmutableFieldError', 'AuditLogRepository',
    'ShareRepository', 'UserRepository'
]
