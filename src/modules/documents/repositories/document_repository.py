from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from database import MAX_DB_ID
from modules.documents.models.document import Document, IMMUTABLE_FIELDS


class ImmutableFieldError(ValueError):
    """A patch tried to rewrite a write-once field."""
    pass


class DocumentRepository:
    """
    CRUD over document records.

    Concurrent updates to the same id are last-write-wins; callers that need
    strict ordering must serialize on their side.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, **fields) -> Document:
        for field in ("id", "created_at", "updated_at"):
            fields.pop(field, None)
        now = datetime.utcnow()
        document = Document(**fields, created_at=now, updated_at=now)
        if document.is_signed is None:
            document.is_signed = False
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        return document

    def get(self, document_id: int) -> Optional[Document]:
        if document_id > MAX_DB_ID:
            return None
        return self.db.get(Document, document_id)

    def list_all(self) -> List[Document]:
        return (
            self.db
            .query(Document)
            .order_by(Document.updated_at.desc(), Document.id.desc())
            .all()
        )

    def update(self, document_id: int, data: Dict) -> Optional[Document]:
        document = self.get(document_id)
        if not document:
            return None

        for field in IMMUTABLE_FIELDS:
            if field in data and data[field] != getattr(document, field):
                raise ImmutableFieldError(f"Field '{field}' of document {document_id} is immutable")
        if document.is_signed and data.get("is_signed") is False:
            raise ImmutableFieldError(f"Document {document_id} is signed and cannot be unsigned")

        for field, value in data.items():
            if field in IMMUTABLE_FIELDS or field == "updated_at":
                continue
            setattr(document, field, value)
        document.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(document)
        return document

    def delete(self, document_id: int) -> bool:
        document = self.get(document_id)
        if not document:
            return False
        self.db.delete(document)
        self.db.commit()
        return True
