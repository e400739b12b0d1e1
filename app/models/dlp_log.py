from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.database import Base

class DlpAction(str, enum.Enum):
    UPLOADED = "uploaded"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"

class DlpLog(Base):
    """Audit entry, one per upload attempt. Never updated after insert."""
    __tablename__ = "dlp_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user = relationship("User", back_populates="dlp_logs")

    file_name = Column(String(260), nullable=False)
    file_size = Column(Integer, nullable=False)
    detected_types = Column(JSON, nullable=False, default=list)  # category names only
    action = Column(Enum(DlpAction), nullable=False)
