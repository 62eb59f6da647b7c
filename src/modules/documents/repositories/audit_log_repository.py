from typing import List, Optional

from sqlalchemy.orm import Session

from database import MAX_DB_ID
from modules.documents.models.audit_log import AuditAction, AuditLogEntry


class AuditLogRepository:
    """Append-only: there is deliberately no update or delete here."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def append(
        self,
        document_id: int,
        user_id: int,
        action: AuditAction,
        details: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            document_id=document_id,
            user_id=user_id,
            action=action,
            details=details,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def list_by_document(self, document_id: int) -> List[AuditLogEntry]:
        if document_id > MAX_DB_ID:
            return []
        return (
            self.db
            .query(AuditLogEntry)
            .filter(AuditLogEntry.document_id == document_id)
            .order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc())
            .all()
        )
