"""Pydantic schemas"""
from app.schemas.user import UserCreate, UserResponse, Token
from app.schemas.dlp import FindingResponse, ScanResponse, DlpLogCreate, DlpLogResponse
from app.schemas.file import (
    FileResponse, FileUpdate, StorageStats, UploadDecisionResponse, UploadResponse, CancelUpload,
)
from app.schemas.security import (
    SendCodeRequest, SendCodeResponse, VerifyCodeRequest, VerifyCodeResponse, DecryptRequest,
    ExportedKeyResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "Token",
    "FindingResponse", "ScanResponse", "DlpLogCreate", "DlpLogResponse",
    "FileResponse", "FileUpdate", "StorageStats", "UploadDecisionResponse", "UploadResponse", "CancelUpload",
    "SendCodeRequest", "SendCodeResponse", "VerifyCodeRequest", "VerifyCodeResponse", "DecryptRequest",
    "ExportedKeyResponse",
]
