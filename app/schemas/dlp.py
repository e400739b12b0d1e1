"""DLP Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.dlp_log import DlpAction

class FindingResponse(BaseModel):
    type: str
    count: int

class ScanResponse(BaseModel):
    file_name: str
    scanned: bool
    findings: List[FindingResponse]

class DlpLogCreate(BaseModel):
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., ge=0)
    detected_types: List[str] = []
    action: DlpAction

class DlpLogResponse(BaseModel):
    id: int
    user_id: Optional[int]
    file_name: str
    file_size: int
    detected_types: List[str]
    action: DlpAction
    timestamp: datetime

    class Config:
        from_attributes = True
