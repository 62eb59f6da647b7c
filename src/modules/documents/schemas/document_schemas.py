from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from database import MAX_DB_ID
from modules.documents.models import AuditAction, SharePermission


class CamelModel(BaseModel):
    """JSON uses camelCase; Python code may use either spelling."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DocumentResponse(CamelModel):
    id: int
    uid: str
    token: str
    name: str
    content_type: str
    size: Optional[str] = None
    creator_id: int
    is_signed: bool
    signature_data: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UploadOptions(CamelModel):
    generate_new_uid: bool = True
    add_token: bool = True
    sign_after_import: bool = False


class AuditLogResponse(CamelModel):
    id: int
    document_id: int
    user_id: int
    action: AuditAction
    details: Optional[str] = None
    timestamp: datetime


class ShareCreateRequest(CamelModel):
    user_id: Optional[int] = Field(default=None, gt=0, le=MAX_DB_ID)
    username: Optional[str] = None
    email: Optional[str] = None
    permission: SharePermission = SharePermission.READ

    @model_validator(mode="after")
    def _require_grantee(self):
        if self.user_id is None and not self.username:
            raise ValueError("userId ou username requis")
        return self


class ShareResponse(CamelModel):
    id: int
    document_id: int
    user_id: int
    permission: SharePermission
    created_at: datetime


class SharedUserResponse(ShareResponse):
    """A share enriched with the grantee's display information."""
    username: Optional[str] = None
    display_name: Optional[str] = None
    initials: Optional[str] = None
    company: Optional[str] = None
