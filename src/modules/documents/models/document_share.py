from sqlalchemy import Column, DateTime, Enum, Integer
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


class SharePermission(str, PyEnum):
    READ = "read"
    WRITE = "write"


class DocumentShare(Base):
    __tablename__ = 'document_shares'

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    permission = Column(Enum(SharePermission), nullable=False, default=SharePermission.READ)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
