from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from database import MAX_DB_ID
from modules.documents.models.document_share import DocumentShare, SharePermission
from modules.documents.models.user import User


class ShareRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def find(self, document_id: int, user_id: int) -> Optional[DocumentShare]:
        if document_id > MAX_DB_ID or user_id > MAX_DB_ID:
            return None
        return (
            self.db
            .query(DocumentShare)
            .filter(DocumentShare.document_id == document_id, DocumentShare.user_id == user_id)
            .first()
        )

    def list_with_users(self, document_id: int) -> List[Tuple[DocumentShare, Optional[User]]]:
        if document_id > MAX_DB_ID:
            return []
        return (
            self.db
            .query(DocumentShare, User)
            .outerjoin(User, User.id == DocumentShare.user_id)
            .filter(DocumentShare.document_id == document_id)
            .order_by(DocumentShare.created_at.asc(), DocumentShare.id.asc())
            .all()
        )

    def upsert(self, document_id: int, user_id: int, permission: SharePermission) -> DocumentShare:
        """One share per (document, user): a second grant replaces the permission."""
        share = self.find(document_id, user_id)
        if share is None:
            share = DocumentShare(document_id=document_id, user_id=user_id, permission=permission)
            self.db.add(share)
        else:
            share.permission = permission
        self.db.commit()
        self.db.refresh(share)
        return share

    def remove(self, document_id: int, user_id: int) -> bool:
        if document_id > MAX_DB_ID or user_id > MAX_DB_ID:
            return False
        deleted = (
            self.db
            .query(DocumentShare)
            .filter(DocumentShare.document_id == document_id, DocumentShare.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    def remove_all(self, document_id: int) -> int:
        if document_id > MAX_DB_ID:
            return 0
        deleted = (
            self.db
            .query(DocumentShare)
            .filter(DocumentShare.document_id == document_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
