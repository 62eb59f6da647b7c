import json
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from config import settings
from database import get_db
from modules.auth.dependencies import get_current_actor_id
from modules.documents.errors import ValidationError
from modules.documents.schemas import AuditLogResponse, DocumentResponse, UploadOptions
from modules.documents.services.document_service import DocumentService
from modules.security.dependencies import sensitive_document_id, valid_document_id

router = APIRouter(
    tags=["documents"]
)

MSG_NO_FILE = "Aucun fichier n'a été téléchargé."
MSG_INVALID_OPTIONS = "Options d'importation invalides."


def parse_upload_options(options: Optional[str]) -> UploadOptions:
    if not options:
        return UploadOptions()
    try:
        return UploadOptions.model_validate(json.loads(options))
    except (ValueError, PydanticValidationError):
        raise ValidationError(MSG_INVALID_OPTIONS)


def content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "document"
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename)}"
    return value


@router.get("", response_model=List[DocumentResponse])
def list_documents(db: Session = Depends(get_db)):
    return DocumentService.list_documents(db)


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    options: Optional[str] = Form(None),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    if file is None:
        raise ValidationError(MSG_NO_FILE)
    upload_options = parse_upload_options(options)
    # One byte past the limit is enough for the size check to reject
    contents = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    # Validation and embedding block; keep them off the event loop
    return await run_in_threadpool(
        DocumentService.upload_document,
        db,
        actor_id,
        contents,
        file.filename or "",
        file.content_type or "",
        settings.TEMP_UPLOAD_DIR,
        settings.COMPANY_ID,
        upload_options,
        settings.MAX_UPLOAD_SIZE,
        settings.SCAN_PREFIX_BYTES,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(document_id: int = Depends(valid_document_id), db: Session = Depends(get_db)):
    return DocumentService.get_document(db, document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: int = Depends(valid_document_id),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    DocumentService.delete_document(db, document_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/sign", response_model=DocumentResponse)
def sign_document(
    document_id: int = Depends(sensitive_document_id),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    return DocumentService.sign_document(db, document_id, actor_id)


@router.get("/{document_id}/download")
def download_document(
    document_id: int = Depends(sensitive_document_id),
    actor_id: int = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
):
    document, data = DocumentService.download_document(db, document_id, actor_id)
    return Response(
        content=data,
        media_type=document.content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(document.name)},
    )


@router.get("/{document_id}/auditlogs", response_model=List[AuditLogResponse])
def list_audit_logs(document_id: int = Depends(valid_document_id), db: Session = Depends(get_db)):
    return DocumentService.get_audit_logs(db, document_id)
