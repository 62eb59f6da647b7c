from .document_schemas import (
    DocumentResponse, UploadOptions, AuditLogResponse, ShareCreateRequest,
    ShareResponse, SharedUserResponse
)

__all__ = [
    'DocumentResponse', 'UploadOptions', 'AuditLogResponse', 'ShareCreateRequest',
    'ShareResponse', 'SharedUserResponse'
]
