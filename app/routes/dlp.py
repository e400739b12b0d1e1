"""API Routes - DLP scanning and audit log"""
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.dlp import DlpLogCreate, DlpLogResponse, ScanResponse
from app.services import records
from app.core.upload_orchestrator import upload_orchestrator
from app.utils.auth import get_current_active_user, require_admin

router = APIRouter(prefix="/api/dlp", tags=["DLP"])

@router.post("/scan", response_model=ScanResponse)
def scan_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user)
):
    """
    Scan a file for sensitive data (emails, card numbers, phone numbers, SSNs).

    Only text files (`text/*`, `.txt`, `.md`, `.json`) are scanned; anything
    else returns no findings.
    """
    matcher = upload_orchestrator.matcher
    scanned = matcher.is_scannable(file.filename, file.content_type)
    findings = matcher.scan_file(file.file.read(), file.filename, file.content_type) if scanned else []
    return ScanResponse(
        file_name=file.filename or "",
        scanned=scanned,
        findings=[f.to_dict() for f in findings],
    )

@router.post("/logs", response_model=DlpLogResponse, status_code=status.HTTP_201_CREATED)
async def log_dlp_event(
    data: DlpLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Record a DLP event reported by a client that scanned locally"""
    return records.create_dlp_log(
        db, current_user.id, data.file_name, data.file_size, data.detected_types, data.action
    )

@router.get("/logs", response_model=List[DlpLogResponse])
async def list_dlp_logs(
    limit: Optional[int] = Query(None, ge=1, le=settings.DLP_LOG_LIST_LIMIT),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Most recent DLP events, newest first (Admin only)"""
    return records.list_dlp_logs(db, limit)
