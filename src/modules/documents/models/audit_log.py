from sqlalchemy import Column, DateTime, Enum, Integer, String, event
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


class AuditAction(str, PyEnum):
    CREATE = "create"
    SIGN = "sign"
    SHARE = "share"
    DOWNLOAD = "download"
    DELETE = "delete"


class AuditLogEntry(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    # Plain reference: entries outlive the document they describe
    document_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    action = Column(Enum(AuditAction), nullable=False)
    details = Column(String, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)


class AuditLogImmutableError(Exception):
    """Raised when something tries to rewrite the audit trail."""
    pass


@event.listens_for(AuditLogEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise AuditLogImmutableError(f"Audit entry {target.id} cannot be modified")


@event.listens_for(AuditLogEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise AuditLogImmutableError(f"Audit entry {target.id} cannot be deleted")
