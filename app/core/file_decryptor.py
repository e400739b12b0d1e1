"""Recipient side: verify a decryption code, then decrypt the stored file with it"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core import cipher
from app.core.code_exchange import DecryptionCodeExchange, code_exchange
from app.core.exceptions import InvalidCodeError, ValidationError
from app.models.file import FileRecord
from app.services import records
from app.utils.storage import StorageManager, storage_manager

logger = logging.getLogger(__name__)


def decrypt_file(db: Session, file_id: int, code: str,
                 exchange: Optional[DecryptionCodeExchange] = None,
                 storage: Optional[StorageManager] = None) -> Tuple[FileRecord, bytes]:
    exchange = exchange or code_exchange
    storage = storage or storage_manager

    file = records.get_file_record(db, file_id)
    if not file.is_encrypted:
        raise ValidationError("File is not encrypted")

    if not exchange.verify_code(db, file_id, code):
        raise InvalidCodeError()

    ciphertext = storage.get(file.file_path)
    key = cipher.derive_key_from_code(code, cipher.b64decode(file.encryption_salt))
    plaintext = cipher.decrypt(ciphertext, key, cipher.b64decode(file.encryption_iv))

    records.touch_file_record(db, file)
    logger.info(f"File {file_id} decrypted for recipient")
    return file, plaintext
