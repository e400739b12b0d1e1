"""Database models"""
from app.models.user import User, UserRole
from app.models.file import FileRecord, SecurityLevel
from app.models.dlp_log import DlpLog, DlpAction
from app.models.decryption_code import DecryptionCode, CodeStatus

__all__ = [
    "User", "UserRole",
    "FileRecord", "SecurityLevel",
    "DlpLog", "DlpAction",
    "DecryptionCode", "CodeStatus",
]
