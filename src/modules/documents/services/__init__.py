from .cleanup import delete_stale_temp_uploads
from .document_service import DocumentService
from .share_service import ShareService

__all__ = ['delete_stale_temp_uploads', 'DocumentService', 'ShareService']
