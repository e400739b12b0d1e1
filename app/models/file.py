"""Stored file metadata model"""
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base

class SecurityLevel(str, enum.Enum):
    """Per-file security tier"""
    STANDARD = "standard"
    HIGH = "high"
    MAXIMUM = "maximum"

class FileRecord(Base):
    """A file owned by a user. is_encrypted is set iff security_level is MAXIMUM."""
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(260), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(120), nullable=False, default="application/octet-stream")
    file_path = Column(String(512), nullable=False, unique=True)
    security_level = Column(Enum(SecurityLevel), default=SecurityLevel.STANDARD, nullable=False)
    is_encrypted = Column(Boolean, default=False, nullable=False)
    is_starred = Column(Boolean, default=False, nullable=False)
    is_trash = Column(Boolean, default=False, nullable=False)
    upload_date = Column(DateTime, default=datetime.utcnow, index=True)
    last_accessed = Column(DateTime, default=datetime.utcnow)

    # AES-GCM parameters (base64). Public values, the key itself is never stored.
    encryption_iv = Column(String(32), nullable=True)
    encryption_salt = Column(String(64), nullable=True)

    owner = relationship("User", back_populates="files")
    decryption_codes = relationship("DecryptionCode", back_populates="file", cascade="all, delete-orphan")
