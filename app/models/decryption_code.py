import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from app.database import Base

class CodeStatus(str, enum.Enum):
    SENT = "sent"
    VERIFIED = "verified"
    REJECTED = "rejected"

class DecryptionCode(Base):
    """One decryption-code send event. Only an HMAC digest of the code is kept."""
    __tablename__ = "decryption_codes"

    id = Column(Integer, primary_key=True, index=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_email = Column(String(255), nullable=False)
    code_digest = Column(String(64), nullable=False)
    status = Column(Enum(CodeStatus), default=CodeStatus.SENT, nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    verified_at = Column(DateTime, nullable=True)

    file = relationship("FileRecord", back_populates="decryption_codes")

    def is_expired(self, now: datetime = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at

    def attempts_exhausted(self, max_attempts: int) -> bool:
        return self.failed_attempts >= max_attempts
