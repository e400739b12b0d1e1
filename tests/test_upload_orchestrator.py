"""
Upload pipeline: scan -> decision -> encryption -> storage -> DLP log.

Run with:
    pytest tests/test_upload_orchestrator.py -v
"""
import pytest
from unittest.mock import MagicMock

from app.core import cipher
from app.core.code_exchange import DecryptionCodeExchange
from app.core.dlp_patterns import Category, PolicyMode
from app.core.exceptions import DecryptionError, InvalidCodeError, ValidationError
from app.core.file_decryptor import decrypt_file
from app.core.upload_orchestrator import DlpPolicy, UploadOrchestrator
from app.models import DlpAction, DlpLog, FileRecord, SecurityLevel
from app.services import records
from app.utils.storage import StorageManager

REPORT = b"Contact: jane@co.com, SSN 123-45-6789"
WARN_EVERYWHERE = {"standard": "warn", "high": "warn", "maximum": "warn"}


@pytest.fixture
def storage(tmp_path):
    return StorageManager(base_dir=str(tmp_path / "objects"))


@pytest.fixture
def exchange(mailer):
    return DecryptionCodeExchange(mailer=mailer)


def make_orchestrator(storage, exchange, level_modes=None, block_categories=None):
    policy = DlpPolicy.from_settings(level_modes or WARN_EVERYWHERE, block_categories or {})
    return UploadOrchestrator(policy=policy, storage=storage, exchange=exchange)


@pytest.fixture
def orchestrator(storage, exchange):
    return make_orchestrator(storage, exchange)


class TestPolicy:
    def test_defaults_warn(self, orchestrator):
        decision = orchestrator.evaluate_upload("report.txt", "text/plain", REPORT, "standard")

        assert decision.action == DlpAction.UPLOADED
        assert decision.detected_types == ["EMAIL", "SSN"]
        assert [f.category for f in decision.warnings] == [Category.EMAIL, Category.SSN]
        assert decision.requires_encryption is False

    def test_clean_file_uploads_even_under_block_mode(self, storage, exchange):
        orchestrator = make_orchestrator(storage, exchange, {"standard": "block"})
        decision = orchestrator.evaluate_upload("notes.txt", "text/plain", b"nothing here", "standard")
        assert decision.action == DlpAction.UPLOADED
        assert decision.findings == []

    def test_level_block_mode(self, storage, exchange):
        orchestrator = make_orchestrator(storage, exchange, {"standard": "warn", "high": "block"})
        assert orchestrator.evaluate_upload("r.txt", "text/plain", REPORT, "standard").action == DlpAction.UPLOADED
        assert orchestrator.evaluate_upload("r.txt", "text/plain", REPORT, "high").action == DlpAction.BLOCKED

    def test_blocked_category(self, storage, exchange):
        orchestrator = make_orchestrator(storage, exchange, block_categories={"high": ["SSN"]})

        decision = orchestrator.evaluate_upload("r.txt", "text/plain", REPORT, SecurityLevel.HIGH)
        assert decision.action == DlpAction.BLOCKED
        assert [f.category for f in decision.warnings] == [Category.EMAIL]

        email_only = orchestrator.evaluate_upload("r.txt", "text/plain", b"jane@co.com", "high")
        assert email_only.action == DlpAction.UPLOADED

    def test_allow_mode_suppresses_warnings(self, storage, exchange):
        orchestrator = make_orchestrator(storage, exchange, {"standard": "allow"})
        for rule in orchestrator.matcher.rules:
            assert rule.policy == PolicyMode.WARN
        decision = orchestrator.evaluate_upload("r.txt", "text/plain", REPORT, "standard")
        # Rule-level WARN is stricter than the level's ALLOW
        assert len(decision.warnings) == 2

    def test_maximum_requires_encryption(self, orchestrator):
        decision = orchestrator.evaluate_upload("photo.png", "image/png", b"\x89PNG", "maximum")
        assert decision.requires_encryption is True
        assert decision.findings == []

    @pytest.mark.parametrize("modes,blocks", [
        ({"standard": "panic"}, {}),
        ({"ultra": "warn"}, {}),
        (WARN_EVERYWHERE, {"high": ["PASSPORT"]}),
    ])
    def test_invalid_configuration(self, modes, blocks):
        with pytest.raises(ValidationError):
            DlpPolicy.from_settings(modes, blocks)

    def test_unknown_security_level(self, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.evaluate_upload("r.txt", "text/plain", REPORT, "ultra")


class TestProcessUpload:
    def test_standard_upload_scenario(self, db, alice, orchestrator, storage):
        result = orchestrator.process_upload(db, alice, "report.txt", "text/plain", REPORT, "standard")

        assert result.decision.action == DlpAction.UPLOADED
        assert {f.category: f.count for f in result.decision.findings} == {Category.EMAIL: 1, Category.SSN: 1}
        assert result.decryption_code is None

        logs = db.query(DlpLog).all()
        assert len(logs) == 1
        assert logs[0].action == DlpAction.UPLOADED
        assert set(logs[0].detected_types) == {"EMAIL", "SSN"}
        assert logs[0].user_id == alice.id
        assert logs[0].file_size == len(REPORT)

        file = result.file
        assert file.is_encrypted is False
        assert file.encryption_iv is None
        assert storage.get(file.file_path) == REPORT

    def test_maximum_upload_scenario(self, db, alice, orchestrator, storage, exchange, mailer):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )

        code = result.decryption_code
        assert cipher.is_valid_code_format(code)
        assert result.code_sent_to == "bob@x.com"
        mailer.send_decryption_code_email.assert_called_once_with("bob@x.com", "report.txt", code)

        file = result.file
        assert file.is_encrypted is True
        assert file.security_level == SecurityLevel.MAXIMUM
        stored = storage.get(file.file_path)
        assert stored != REPORT
        assert b"jane@co.com" not in stored

        assert exchange.verify_code(db, file.id, code) is True
        assert exchange.verify_code(db, file.id, "000000") is False

        assert db.query(DlpLog).count() == 1

    def test_maximum_upload_decrypts_with_code(self, db, alice, orchestrator, storage, exchange):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )

        record, plaintext = decrypt_file(db, result.file.id, result.decryption_code, exchange=exchange, storage=storage)
        assert record.id == result.file.id
        assert plaintext == REPORT

    def test_decrypt_with_wrong_code(self, db, alice, orchestrator, storage, exchange):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )
        with pytest.raises(InvalidCodeError):
            decrypt_file(db, result.file.id, "000000", exchange=exchange, storage=storage)

    def test_decrypt_detects_tampered_storage(self, db, alice, orchestrator, storage, exchange):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )
        stored = bytearray(storage.get(result.file.file_path))
        stored[0] ^= 1
        storage.put(result.file.file_path, bytes(stored))

        with pytest.raises(DecryptionError):
            decrypt_file(db, result.file.id, result.decryption_code, exchange=exchange, storage=storage)

    def test_decrypt_plain_file_rejected(self, db, alice, orchestrator, storage, exchange):
        result = orchestrator.process_upload(db, alice, "report.txt", "text/plain", REPORT, "high")
        with pytest.raises(ValidationError):
            decrypt_file(db, result.file.id, "123456", exchange=exchange, storage=storage)

    def test_maximum_without_recipient(self, db, alice, orchestrator, mailer):
        result = orchestrator.process_upload(db, alice, "photo.png", "image/png", b"\x89PNG\x00", "maximum")

        assert result.file.is_encrypted is True
        assert cipher.is_valid_code_format(result.decryption_code)
        assert result.code_sent_to is None
        mailer.send_decryption_code_email.assert_not_called()

    def test_delivery_failure_keeps_file(self, db, alice, orchestrator, mailer):
        mailer.send_decryption_code_email.return_value = False

        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )
        assert result.file is not None
        assert result.decryption_code is not None
        assert result.code_sent_to is None
        assert db.query(DlpLog).count() == 1

    @pytest.mark.parametrize("level", list(SecurityLevel))
    def test_encrypted_iff_maximum(self, db, alice, orchestrator, level):
        result = orchestrator.process_upload(db, alice, "a.bin", None, b"\x00\x01", level)
        assert result.file.is_encrypted == (level == SecurityLevel.MAXIMUM)
        assert result.file.file_type == "application/octet-stream"

    def test_blocked_upload(self, db, alice, storage, exchange, tmp_path):
        orchestrator = make_orchestrator(storage, exchange, block_categories={"standard": ["SSN"]})

        result = orchestrator.process_upload(db, alice, "report.txt", "text/plain", REPORT, "standard")

        assert result.decision.action == DlpAction.BLOCKED
        assert result.file is None
        assert db.query(FileRecord).count() == 0
        assert not (tmp_path / "objects").exists()
        log = db.query(DlpLog).one()
        assert log.action == DlpAction.BLOCKED
        assert log.detected_types == ["EMAIL", "SSN"]

    def test_cancel_upload(self, db, alice, orchestrator):
        log = orchestrator.cancel_upload(db, alice, "report.txt", 37, ["EMAIL", "SSN"])

        assert log.action == DlpAction.CANCELLED
        assert db.query(DlpLog).count() == 1
        assert db.query(FileRecord).count() == 0

    def test_missing_file_name(self, db, alice, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.process_upload(db, alice, "", "text/plain", REPORT, "standard")


class TestUploadFailures:
    def test_blank_recipient_means_no_recipient(self, db, alice, orchestrator, mailer):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="   "
        )

        assert result.file.is_encrypted is True
        assert cipher.is_valid_code_format(result.decryption_code)
        assert result.code_sent_to is None
        mailer.send_decryption_code_email.assert_not_called()
        assert db.query(DlpLog).count() == 1

    def test_recipient_is_trimmed(self, db, alice, orchestrator, mailer):
        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="  bob@x.com "
        )
        assert result.code_sent_to == "bob@x.com"
        mailer.send_decryption_code_email.assert_called_once_with("bob@x.com", "report.txt", result.decryption_code)

    def test_invalid_recipient_rejected_before_storing(self, db, alice, orchestrator, tmp_path):
        with pytest.raises(ValidationError):
            orchestrator.process_upload(
                db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="not-an-address"
            )

        assert db.query(FileRecord).count() == 0
        assert db.query(DlpLog).count() == 0
        assert not (tmp_path / "objects").exists()

    def test_code_kept_when_send_is_rejected(self, db, alice, storage):
        exchange = MagicMock()
        exchange.send_code.side_effect = ValidationError("Code must be 6 digits")
        orchestrator = make_orchestrator(storage, exchange)

        result = orchestrator.process_upload(
            db, alice, "report.txt", "text/plain", REPORT, "maximum", recipient_email="bob@x.com"
        )
        assert result.file is not None
        assert cipher.is_valid_code_format(result.decryption_code)
        assert result.code_sent_to is None

    def test_storage_failure_is_logged(self, db, alice, exchange):
        storage = MagicMock()
        storage.put.side_effect = OSError("disk full")
        orchestrator = make_orchestrator(storage, exchange)

        with pytest.raises(OSError):
            orchestrator.process_upload(db, alice, "report.txt", "text/plain", REPORT, "standard")

        assert db.query(FileRecord).count() == 0
        log = db.query(DlpLog).one()
        assert log.action == DlpAction.BLOCKED
        assert log.detected_types == ["EMAIL", "SSN"]
        storage.delete.assert_not_called()

    def test_record_failure_removes_stored_bytes(self, db, alice, orchestrator, tmp_path, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("insert failed")
        monkeypatch.setattr(records, "create_file_record", fail)

        with pytest.raises(RuntimeError):
            orchestrator.process_upload(db, alice, "report.txt", "text/plain", REPORT, "maximum")

        assert [p for p in (tmp_path / "objects").rglob("*") if p.is_file()] == []
        assert db.query(DlpLog).one().action == DlpAction.BLOCKED
