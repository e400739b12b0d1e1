"""File Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.file import SecurityLevel
from app.schemas.dlp import FindingResponse, DlpLogResponse

class FileResponse(BaseModel):
    id: int
    user_id: int
    file_name: str
    file_size: int
    file_type: str
    security_level: SecurityLevel
    is_encrypted: bool
    is_starred: bool
    is_trash: bool
    upload_date: Optional[datetime]
    last_accessed: Optional[datetime]

    class Config:
        from_attributes = True

class FileUpdate(BaseModel):
    """Metadata only; owner and stored path never change"""
    file_name: Optional[str] = Field(None, min_length=1, max_length=260)
    is_starred: Optional[bool] = None
    is_trash: Optional[bool] = None

class StorageStats(BaseModel):
    total_used: int
    file_count: int

class UploadDecisionResponse(BaseModel):
    action: str
    findings: List[FindingResponse]
    warnings: List[FindingResponse]
    requires_encryption: bool

class UploadResponse(BaseModel):
    decision: UploadDecisionResponse
    log: DlpLogResponse
    file: Optional[FileResponse] = None
    decryption_code: Optional[str] = Field(None, description="Returned once for maximum-security uploads")
    code_sent_to: Optional[str] = None

class CancelUpload(BaseModel):
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., ge=0)
    detected_types: List[str] = []
