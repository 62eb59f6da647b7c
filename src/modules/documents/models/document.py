from sqlalchemy import Boolean, Column, DateTime, Integer, LargeBinary, String
from datetime import datetime

from database import Base

# Never patched after creation
IMMUTABLE_FIELDS = ("id", "uid", "token", "created_at")


class Document(Base):
    __tablename__ = 'documents'

    id = Column(Integer, primary_key=True)
    uid = Column(String, unique=True, nullable=False)
    token = Column(String, nullable=False)
    name = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    content = Column(LargeBinary, nullable=True)
    size = Column(String, nullable=True)
    creator_id = Column(Integer, nullable=False, index=True)
    is_signed = Column(Boolean, nullable=False, default=False)
    signature_data = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
