"""API Routes - File storage"""
from typing import List, Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.file import SecurityLevel
from app.models.user import User
from app.schemas.file import (
    CancelUpload, FileResponse, FileUpdate, StorageStats, UploadDecisionResponse, UploadResponse,
)
from app.schemas.dlp import DlpLogResponse
from app.services import records
from app.core.upload_orchestrator import UploadDecision, upload_orchestrator
from app.core.exceptions import ValidationError
from app.utils.auth import get_current_active_user
from app.utils.storage import storage_manager

router = APIRouter(prefix="/api/files", tags=["Files"])

def serialize_decision(decision: UploadDecision) -> UploadDecisionResponse:
    return UploadDecisionResponse(
        action=decision.action.value,
        findings=[f.to_dict() for f in decision.findings],
        warnings=[f.to_dict() for f in decision.warnings],
        requires_encryption=decision.requires_encryption,
    )

@router.get("", response_model=List[FileResponse])
async def list_files(
    view: str = Query("all", pattern="^(all|recent|starred|trash)$"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """List the caller's files"""
    return records.list_file_records(db, current_user, view, search)

@router.get("/stats", response_model=StorageStats)
async def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return records.storage_stats(db, current_user)

@router.post("/evaluate", response_model=UploadDecisionResponse)
def evaluate_upload(
    file: UploadFile = File(...),
    security_level: SecurityLevel = Form(SecurityLevel.STANDARD),
    current_user: User = Depends(get_current_active_user)
):
    """Preview the DLP decision for a file without storing or logging anything"""
    data = file.file.read()
    decision = upload_orchestrator.evaluate_upload(file.filename, file.content_type, data, security_level)
    return serialize_decision(decision)

@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    response: Response,
    file: UploadFile = File(...),
    security_level: SecurityLevel = Form(SecurityLevel.STANDARD),
    recipient_email: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Upload a file.

    - **standard / high**: stored as-is
    - **maximum**: encrypted with AES-256-GCM under a key derived from a 6-digit code.
      The code is returned once and, if `recipient_email` is set, emailed to the recipient.

    Blocked uploads return 403 with the DLP decision; nothing is stored.
    """
    data = file.file.read()
    if not file.filename:
        raise ValidationError("File name is required")

    result = upload_orchestrator.process_upload(
        db, current_user, file.filename, file.content_type, data, security_level,
        recipient_email=recipient_email,
    )
    if result.file is None:
        response.status_code = status.HTTP_403_FORBIDDEN

    return UploadResponse(
        decision=serialize_decision(result.decision),
        log=DlpLogResponse.model_validate(result.log),
        file=FileResponse.model_validate(result.file) if result.file else None,
        decryption_code=result.decryption_code,
        code_sent_to=result.code_sent_to,
    )

@router.post("/cancel", response_model=DlpLogResponse, status_code=status.HTTP_201_CREATED)
async def cancel_upload(
    data: CancelUpload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Record that the user aborted an upload after seeing DLP findings"""
    return upload_orchestrator.cancel_upload(db, current_user, data.file_name, data.file_size, data.detected_types)

@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return records.get_file_record(db, file_id, current_user)

@router.patch("/{file_id}", response_model=FileResponse)
async def update_file(
    file_id: int,
    data: FileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Star, rename or move to/from trash"""
    return records.update_file_record(db, file_id, current_user, **data.model_dump(exclude_unset=True))

@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """First delete moves the file to trash, a second delete removes it permanently"""
    record = records.get_file_record(db, file_id, current_user, owner_only=True)
    if not record.is_trash:
        trashed = records.update_file_record(db, file_id, current_user, is_trash=True)
        return {"deleted": False, "file": FileResponse.model_validate(trashed)}

    storage_manager.delete(record.file_path)
    records.delete_file_record(db, record)
    return {"deleted": True, "file": None}

@router.get("/{file_id}/download")
def download_file(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Raw stored bytes; ciphertext for encrypted files"""
    record = records.get_file_record(db, file_id, current_user)
    data = storage_manager.get(record.file_path)
    records.touch_file_record(db, record)

    headers = {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.file_name)}"}
    if record.is_encrypted:
        headers["X-Encryption-IV"] = record.encryption_iv
        headers["X-Encryption-Salt"] = record.encryption_salt
        media_type = "application/octet-stream"
    else:
        media_type = record.file_type
    return Response(content=data, media_type=media_type, headers=headers)
