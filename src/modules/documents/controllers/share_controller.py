from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from modules.auth.dependencies import get_current_actor_id
from modules.documents.schemas import ShareCreateRequest, SharedUserResponse, ShareResponse
from modules.documents.services.share_service import ShareService
from modules.security.dependencies import valid_document_id, valid_user_id

router = APIRouter(
    tags=["shares"]
)


@router.get("/{document_id}/shares", response_model=List[SharedUserResponse])
def list_shares(document_id: int = Depends(valid_document_id), db: Session = Depends(get_db)):
    return ShareService.list_shares(db, document_id)


@router.post("/{document_id}/shares", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def add_share(
    payload: ShareCreateRequest,
    document_id: int = Depends(valid_document_id),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    user_id = ShareService.resolve_grantee(db, payload.user_id, payload.username)
    return ShareService.add_share(db, document_id, user_id, payload.permission, actor_id, payload.email)


@router.delete("/{document_id}/shares/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_share(
    document_id: int = Depends(valid_document_id),
    user_id: int = Depends(valid_user_id),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    ShareService.remove_share(db, document_id, user_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
