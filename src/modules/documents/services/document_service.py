import logging
import os
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from modules.documents.errors import NotFoundError
from modules.documents.models.audit_log import AuditAction, AuditLogEntry
from modules.documents.models.document import Document
from modules.documents.repositories import AuditLogRepository, DocumentRepository, ShareRepository
from modules.documents.schemas import UploadOptions
from modules.documents.services.identifiers import generate_token, generate_uid
from modules.documents.services.provenance import (
    SIGNATURE_PREFIX, embed_or_original, signature_info_for, signature_label
)
from modules.documents.services.upload_validator import (
    MAX_FILE_SIZE, PDF_MIME_TYPE, SCAN_PREFIX_BYTES, validate_upload
)

logger = logging.getLogger(__name__)

MSG_DOCUMENT_NOT_FOUND = "Document non trouvé"
MSG_CONTENT_NOT_FOUND = "Contenu du document non trouvé"


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / 1024 / 1024:.2f} MB"


class DocumentService:

    @staticmethod
    def list_documents(session: Session) -> List[Document]:
        """All documents, most recently updated first."""
        return DocumentRepository(session).list_all()

    @staticmethod
    def get_document(session: Session, document_id: int) -> Document:
        document = DocumentRepository(session).get(document_id)
        if not document:
            raise NotFoundError(MSG_DOCUMENT_NOT_FOUND)
        return document

    @staticmethod
    def upload_document(
        session: Session,
        actor_id: int,
        file_contents: bytes,
        filename: str,
        content_type: str,
        temp_dir: str,
        company_id: int,
        options: Optional[UploadOptions] = None,
        max_file_size: int = MAX_FILE_SIZE,
        scan_prefix_bytes: int = SCAN_PREFIX_BYTES,
    ) -> Document:
        """
        Validate, stamp and store a new document:
        - validates the upload (type, size, magic bytes, active content)
        - issues a fresh UID and token
        - embeds provenance unless options.add_token is false
        - creates the record and appends a `create` audit entry
        - signs right away when options.sign_after_import is set
        """
        options = options or UploadOptions()
        name = os.path.basename(filename or "") or "document.pdf"

        # 1) Validation; nothing is persisted on failure
        warnings = validate_upload(
            file_contents, content_type, name, temp_dir, max_file_size, scan_prefix_bytes
        )
        for warning in warnings:
            logger.warning("Upload %s: %s", name, warning)

        # 2) Identifiers; a new UID is issued for every record
        uid = generate_uid(actor_id, company_id)
        token = generate_token()

        # 3) Provenance
        content = file_contents
        if options.add_token and content_type == PDF_MIME_TYPE:
            content = embed_or_original(file_contents, uid, token)
            logger.info("UID and token embedded on import: %s", name)

        # 4) Persist, then audit
        document = DocumentRepository(session).create(
            name=name,
            uid=uid,
            token=token,
            content=content,
            content_type=content_type,
            size=format_size(len(file_contents)),
            creator_id=actor_id,
            is_signed=False,
        )
        AuditLogRepository(session).append(
            document.id, actor_id, AuditAction.CREATE, f"Document importé: {name}"
        )

        if options.sign_after_import:
            document = DocumentService._apply_signature(session, document, actor_id)

        return document

    @staticmethod
    def sign_document(session: Session, document_id: int, actor_id: int) -> Document:
        """Sign once; a signed document is returned unchanged."""
        document = DocumentService.get_document(session, document_id)
        if document.is_signed:
            logger.info("Document %s is already signed", document.id)
            return document
        return DocumentService._apply_signature(session, document, actor_id)

    @staticmethod
    def _apply_signature(session: Session, document: Document, actor_id: int) -> Document:
        # Placeholder token, not a cryptographic signature
        signature_data = f"{SIGNATURE_PREFIX}{uuid.uuid4()}"
        label = signature_label(signature_data)

        content = document.content
        if document.content_type == PDF_MIME_TYPE and content:
            content = embed_or_original(content, document.uid, document.token, signature_info_for(signature_data))
            logger.info("PDF signed: %s", document.name)

        updated = DocumentRepository(session).update(document.id, {
            "content": content,
            "is_signed": True,
            "signature_data": signature_data,
        })
        AuditLogRepository(session).append(
            document.id, actor_id, AuditAction.SIGN, f"Document signé avec le certificat #{label}"
        )
        return updated

    @staticmethod
    def download_document(session: Session, document_id: int, actor_id: int) -> Tuple[Document, bytes]:
        """
        Return the document and a freshly stamped copy of its content.

        The download is audited before the content is produced; the stored
        bytes are left untouched.
        """
        document = DocumentService.get_document(session, document_id)

        AuditLogRepository(session).append(
            document.id, actor_id, AuditAction.DOWNLOAD,
            f"Document téléchargé par l'utilisateur ID: {actor_id}"
        )

        if not document.content:
            raise NotFoundError(MSG_CONTENT_NOT_FOUND)

        data = bytes(document.content)
        if document.content_type == PDF_MIME_TYPE:
            signature_info = None
            if document.is_signed and document.signature_data:
                signature_info = signature_info_for(document.signature_data)
            data = embed_or_original(data, document.uid, document.token, signature_info)

        return document, data

    @staticmethod
    def delete_document(session: Session, document_id: int, actor_id: int) -> None:
        """Audit first, then remove the shares and the record."""
        document = DocumentService.get_document(session, document_id)

        AuditLogRepository(session).append(
            document.id, actor_id, AuditAction.DELETE, f"Document supprimé: {document.name}"
        )
        ShareRepository(session).remove_all(document.id)
        DocumentRepository(session).delete(document.id)
        logger.info("Document %s deleted by user %s", document.id, actor_id)

    @staticmethod
    def get_audit_logs(session: Session, document_id: int) -> List[AuditLogEntry]:
        return AuditLogRepository(session).list_by_document(document_id)
