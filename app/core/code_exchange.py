"""
Decryption-code exchange.

A code moves Sent -> Verified, or Sent -> Rejected on a mismatch (a rejected
code can still be verified until its attempt budget or TTL runs out). Only an
HMAC-SHA256 digest of the code is stored.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.core.cipher import is_valid_code_format
from app.core.exceptions import DeliveryError, ValidationError
from app.models.decryption_code import CodeStatus, DecryptionCode
from app.models.file import FileRecord
from app.models.user import User
from app.services import records
from app.services.email_service import EmailService, email_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeAck:
    file_id: int
    recipient_email: str
    expires_at: datetime


def code_digest(file_id: int, code: str) -> str:
    message = f"{file_id}:{code}".encode("utf-8")
    return hmac.new(settings.SECRET_KEY.encode("utf-8"), message, hashlib.sha256).hexdigest()


class DecryptionCodeExchange:
    def __init__(self, mailer: Optional[EmailService] = None,
                 ttl_minutes: Optional[int] = None, max_attempts: Optional[int] = None):
        self.mailer = mailer or email_service
        if ttl_minutes is None:
            ttl_minutes = settings.DECRYPTION_CODE_TTL_MINUTES
        self.ttl = timedelta(minutes=ttl_minutes)
        self.max_attempts = settings.DECRYPTION_CODE_MAX_ATTEMPTS if max_attempts is None else max_attempts

    def send_code(self, db: Session, user: User, file_id: int, recipient_email: str, code: str) -> CodeAck:
        """Email a code for a file the caller owns and record its digest"""
        if not recipient_email or not recipient_email.strip():
            raise ValidationError("Recipient email is required")
        if not is_valid_code_format(code):
            raise ValidationError("Code must be 6 digits")

        file = records.get_file_record(db, file_id, user, owner_only=True)
        return self.deliver(db, file, recipient_email.strip(), code)

    def deliver(self, db: Session, file: FileRecord, recipient_email: str, code: str) -> CodeAck:
        if not self.mailer.send_decryption_code_email(recipient_email, file.file_name, code):
            raise DeliveryError(f"Failed to send decryption code to {recipient_email}")

        now = datetime.utcnow()
        entry = DecryptionCode(
            file_id=file.id,
            recipient_email=recipient_email,
            code_digest=code_digest(file.id, code),
            status=CodeStatus.SENT,
            failed_attempts=0,
            created_at=now,
            expires_at=now + self.ttl,
        )
        db.add(entry)
        db.commit()
        logger.info(f"Decryption code for file {file.id} sent to {recipient_email}")
        return CodeAck(file_id=file.id, recipient_email=recipient_email, expires_at=entry.expires_at)

    def _latest(self, db: Session, file_id: int) -> Optional[DecryptionCode]:
        return (
            db.query(DecryptionCode)
            .filter(DecryptionCode.file_id == file_id)
            .order_by(DecryptionCode.created_at.desc(), DecryptionCode.id.desc())
            .with_for_update()
            .first()
        )

    def verify_code(self, db: Session, file_id: int, submitted_code: str) -> bool:
        """
        Check a submitted code against the latest code sent for the file.
        Mismatches return False and spend one attempt; they never raise.
        """
        records.get_file_record(db, file_id)

        entry = self._latest(db, file_id)
        if entry is None:
            logger.info(f"Verify for file {file_id}: no code has been sent")
            return False
        if entry.is_expired():
            logger.info(f"Verify for file {file_id}: code expired")
            return False
        if entry.attempts_exhausted(self.max_attempts):
            logger.warning(f"Verify for file {file_id}: attempt budget exhausted")
            return False

        submitted = submitted_code if isinstance(submitted_code, str) else ""
        valid = hmac.compare_digest(entry.code_digest, code_digest(file_id, submitted))

        if valid:
            entry.status = CodeStatus.VERIFIED
            entry.verified_at = datetime.utcnow()
        else:
            entry.status = CodeStatus.REJECTED
            entry.failed_attempts += 1
        db.commit()

        if not valid:
            logger.warning(f"Rejected decryption code for file {file_id} "
                           f"({entry.failed_attempts}/{self.max_attempts} attempts)")
        return valid


code_exchange = DecryptionCodeExchange()
