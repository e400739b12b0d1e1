"""
Upload Orchestrator
Scan -> policy decision -> optional encryption -> byte storage -> DLP audit log.

Detection and enforcement are separate: the scanner only reports findings and
DlpPolicy turns them into an action. Every upload attempt ends in exactly one
DLP log entry (uploaded, blocked or cancelled).
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from app.config import settings
from app.core import cipher
from app.core.code_exchange import DecryptionCodeExchange, code_exchange
from app.core.dlp_patterns import Category, DLPPatternMatcher, PolicyMode, SensitiveDataFinding
from app.core.exceptions import DeliveryError, ValidationError
from app.models.dlp_log import DlpAction, DlpLog
from app.models.file import FileRecord, SecurityLevel
from app.models.user import User
from app.services import records
from app.utils.storage import StorageManager, storage_manager

logger = logging.getLogger(__name__)


def _parse_level(value) -> SecurityLevel:
    try:
        return SecurityLevel(value)
    except ValueError:
        raise ValidationError(f"Unknown security level: {value}")


def _parse_recipient(value: Optional[str]) -> Optional[str]:
    """Blank means no recipient. Anything else must be a valid address."""
    if value is None or not value.strip():
        return None
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid recipient email: {e}")


@dataclass
class DlpPolicy:
    """Explicit enforcement rules per security level"""
    level_modes: Dict[SecurityLevel, PolicyMode] = field(default_factory=dict)
    block_categories: Dict[SecurityLevel, frozenset] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, level_modes: Optional[Mapping[str, str]] = None,
                      block_categories: Optional[Mapping[str, Sequence[str]]] = None) -> "DlpPolicy":
        level_modes = settings.DLP_LEVEL_MODES if level_modes is None else level_modes
        block_categories = settings.DLP_BLOCK_CATEGORIES if block_categories is None else block_categories
        try:
            return cls(
                level_modes={_parse_level(k): PolicyMode(v) for k, v in level_modes.items()},
                block_categories={
                    _parse_level(k): frozenset(Category(c) for c in v)
                    for k, v in block_categories.items()
                },
            )
        except ValueError as e:
            raise ValidationError(f"Invalid DLP policy configuration: {e}")

    def mode_for(self, level: SecurityLevel, finding: SensitiveDataFinding,
                 rule_mode: PolicyMode = PolicyMode.ALLOW) -> PolicyMode:
        modes = [self.level_modes.get(level, PolicyMode.WARN), rule_mode]
        if finding.category in self.block_categories.get(level, frozenset()):
            modes.append(PolicyMode.BLOCK)
        return PolicyMode.strictest(modes)


@dataclass
class UploadDecision:
    action: DlpAction
    findings: List[SensitiveDataFinding]
    warnings: List[SensitiveDataFinding]
    requires_encryption: bool

    @property
    def detected_types(self) -> List[str]:
        return [f.category.value for f in self.findings]


@dataclass
class UploadResult:
    decision: UploadDecision
    log: DlpLog
    file: Optional[FileRecord] = None
    decryption_code: Optional[str] = None
    code_sent_to: Optional[str] = None


class UploadOrchestrator:
    def __init__(self, matcher: Optional[DLPPatternMatcher] = None, policy: Optional[DlpPolicy] = None,
                 storage: Optional[StorageManager] = None, exchange: Optional[DecryptionCodeExchange] = None):
        self.matcher = matcher or DLPPatternMatcher()
        self.policy = policy or DlpPolicy.from_settings()
        self.storage = storage or storage_manager
        self.exchange = exchange or code_exchange

    def evaluate_upload(self, file_name: str, mime_type: Optional[str], content: bytes,
                        security_level) -> UploadDecision:
        """Scan and decide. No side effects."""
        level = _parse_level(security_level)
        findings = self.matcher.scan_file(content, file_name, mime_type)

        blocked = False
        warnings = []
        for finding in findings:
            rule = self.matcher.rule_for(finding.category)
            mode = self.policy.mode_for(level, finding, rule.policy if rule else PolicyMode.ALLOW)
            if mode == PolicyMode.BLOCK:
                blocked = True
            elif mode == PolicyMode.WARN:
                warnings.append(finding)

        return UploadDecision(
            action=DlpAction.BLOCKED if blocked else DlpAction.UPLOADED,
            findings=findings,
            warnings=warnings,
            requires_encryption=level == SecurityLevel.MAXIMUM,
        )

    def process_upload(self, db: Session, user: User, file_name: str, mime_type: Optional[str],
                       data: bytes, security_level, recipient_email: Optional[str] = None) -> UploadResult:
        if not file_name:
            raise ValidationError("File name is required")
        level = _parse_level(security_level)
        recipient = _parse_recipient(recipient_email)
        decision = self.evaluate_upload(file_name, mime_type, data, level)

        if decision.action == DlpAction.BLOCKED:
            log = records.create_dlp_log(db, user.id, file_name, len(data), decision.detected_types, DlpAction.BLOCKED)
            logger.warning(f"Upload of {file_name!r} by user {user.id} blocked: {decision.detected_types}")
            return UploadResult(decision=decision, log=log)

        code = None
        extra = {}
        payload = data
        if decision.requires_encryption:
            code = cipher.generate_code()
            salt = cipher.generate_salt()
            encrypted = cipher.encrypt(data, cipher.derive_key_from_code(code, salt))
            payload = encrypted.ciphertext
            extra = {
                "encryption_iv": cipher.b64encode(encrypted.nonce),
                "encryption_salt": cipher.b64encode(salt),
            }

        path = None
        try:
            path = self.storage.put(f"{user.id}/{uuid.uuid4().hex}", payload)
            file = records.create_file_record(
                db,
                user_id=user.id,
                file_name=file_name,
                file_size=len(data),
                file_type=mime_type or "application/octet-stream",
                file_path=path,
                security_level=level,
                is_encrypted=decision.requires_encryption,
                **extra,
            )
        except Exception:
            db.rollback()
            if path is not None:
                self.storage.delete(path)
            logger.exception(f"Upload of {file_name!r} by user {user.id} failed while storing")
            records.create_dlp_log(db, user.id, file_name, len(data), decision.detected_types, DlpAction.BLOCKED)
            raise

        log = records.create_dlp_log(db, user.id, file_name, len(data), decision.detected_types, DlpAction.UPLOADED)
        result = UploadResult(decision=decision, log=log, file=file, decryption_code=code)

        if code and recipient:
            try:
                self.exchange.send_code(db, user, file.id, recipient, code)
                result.code_sent_to = recipient
            except (DeliveryError, ValidationError) as e:
                # The file is stored; the owner can resend with the returned code.
                logger.error(f"Upload of file {file.id} stored but code delivery failed: {e}")

        return result

    def cancel_upload(self, db: Session, user: User, file_name: str, file_size: int,
                      detected_types: Iterable[str]) -> DlpLog:
        """The user aborted after seeing findings"""
        if not file_name:
            raise ValidationError("File name is required")
        return records.create_dlp_log(db, user.id, file_name, file_size, detected_types, DlpAction.CANCELLED)


upload_orchestrator = UploadOrchestrator()
