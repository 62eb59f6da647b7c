from typing import List, Optional

from sqlalchemy.orm import Session

from modules.documents.errors import NotFoundError, ValidationError
from modules.documents.models.audit_log import AuditAction
from modules.documents.models.document_share import DocumentShare, SharePermission
from modules.documents.repositories import (
    AuditLogRepository, DocumentRepository, ShareRepository, UserRepository
)
from modules.documents.schemas import SharedUserResponse

MSG_DOCUMENT_NOT_FOUND = "Document non trouvé"
MSG_USER_NOT_FOUND = "Utilisateur introuvable"


class ShareService:

    @staticmethod
    def list_shares(session: Session, document_id: int) -> List[SharedUserResponse]:
        """Shares of a document with the grantee's display info (None for unknown users)."""
        entries = []
        for share, user in ShareRepository(session).list_with_users(document_id):
            entries.append(SharedUserResponse(
                id=share.id,
                document_id=share.document_id,
                user_id=share.user_id,
                permission=share.permission,
                created_at=share.created_at,
                username=user.username if user else None,
                display_name=user.display_name if user else None,
                initials=user.initials if user else None,
                company=user.company if user else None,
            ))
        return entries

    @staticmethod
    def resolve_grantee(session: Session, user_id: Optional[int], username: Optional[str]) -> int:
        """An explicit user id wins; otherwise look the username up."""
        if user_id is not None:
            return user_id
        user = UserRepository(session).get_by_username(username or "")
        if not user:
            raise ValidationError(MSG_USER_NOT_FOUND)
        return user.id

    @staticmethod
    def add_share(
        session: Session,
        document_id: int,
        user_id: int,
        permission: SharePermission,
        actor_id: int,
        email: Optional[str] = None,
    ) -> DocumentShare:
        if not DocumentRepository(session).get(document_id):
            raise NotFoundError(MSG_DOCUMENT_NOT_FOUND)

        share = ShareRepository(session).upsert(document_id, user_id, permission)

        grantee = f"{email} (ID: {user_id})" if email else f"ID: {user_id}"
        AuditLogRepository(session).append(
            document_id, actor_id, AuditAction.SHARE,
            f"Document partagé avec l'utilisateur {grantee} ({permission.value})"
        )
        return share

    @staticmethod
    def remove_share(session: Session, document_id: int, user_id: int, actor_id: int) -> None:
        """Idempotent: removing a share that does not exist is a no-op."""
        removed = ShareRepository(session).remove(document_id, user_id)
        if removed:
            AuditLogRepository(session).append(
                document_id, actor_id, AuditAction.SHARE,
                f"Partage supprimé pour l'utilisateur ID: {user_id}"
            )
