"""
AES-256-GCM wrapper for maximum-security files.

Keys are exchanged as JSON Web Keys. For files shared by decryption code, the
key is never stored: it is re-derived from the 6-digit code and the per-file
salt with PBKDF2-HMAC-SHA256.
"""
import base64
import binascii
import json
import os
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.config import settings
from app.core.exceptions import DecryptionError, KeyFormatError

KEY_SIZE = 32    # AES-256
NONCE_SIZE = 12  # 96-bit GCM nonce
SALT_SIZE = 16
CODE_LENGTH = 6


@dataclass(frozen=True)
class SymmetricKey:
    raw: bytes

    def __repr__(self) -> str:
        return "SymmetricKey(<redacted>)"


@dataclass(frozen=True)
class EncryptedPayload:
    ciphertext: bytes  # GCM tag appended
    nonce: bytes


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def generate_key() -> SymmetricKey:
    return SymmetricKey(AESGCM.generate_key(bit_length=KEY_SIZE * 8))


def export_key(key: SymmetricKey) -> str:
    """Serialize a key as a JWK JSON string"""
    jwk = {
        "kty": "oct",
        "k": _b64url_encode(key.raw),
        "alg": "A256GCM",
        "ext": True,
        "key_ops": ["encrypt", "decrypt"],
    }
    return json.dumps(jwk)


def import_key(exported: str) -> SymmetricKey:
    """Inverse of export_key. Raises KeyFormatError on anything else."""
    try:
        jwk = json.loads(exported)
    except (TypeError, ValueError) as e:
        raise KeyFormatError(f"Key is not valid JSON: {e}")
    if not isinstance(jwk, dict) or jwk.get("kty") != "oct":
        raise KeyFormatError("Key must be a JWK with kty 'oct'")
    if jwk.get("alg", "A256GCM") != "A256GCM":
        raise KeyFormatError(f"Unsupported key algorithm: {jwk.get('alg')}")
    k = jwk.get("k")
    if not isinstance(k, str):
        raise KeyFormatError("Key material 'k' is missing")
    try:
        raw = _b64url_decode(k)
    except (binascii.Error, ValueError):
        raise KeyFormatError("Key material is not valid base64url")
    if len(raw) != KEY_SIZE:
        raise KeyFormatError(f"Key must be {KEY_SIZE * 8} bits, got {len(raw) * 8}")
    return SymmetricKey(raw)


def encrypt(data: bytes, key: SymmetricKey) -> EncryptedPayload:
    # Fresh random nonce on every call; never reused under one key.
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(key.raw).encrypt(nonce, data, None)
    return EncryptedPayload(ciphertext=ciphertext, nonce=nonce)


def decrypt(ciphertext: bytes, key: SymmetricKey, nonce: bytes) -> bytes:
    if len(nonce) != NONCE_SIZE:
        raise DecryptionError("Invalid nonce length")
    try:
        return AESGCM(key.raw).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionError()


def generate_code() -> str:
    """6-digit decimal code, 100000-999999"""
    return str(100000 + secrets.randbelow(900000))


def is_valid_code_format(code: str) -> bool:
    return isinstance(code, str) and len(code) == CODE_LENGTH and code.isascii() and code.isdigit()


def generate_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def derive_key_from_code(code: str, salt: bytes, iterations: int = None) -> SymmetricKey:
    """Deterministically map a decryption code and a per-file salt to an AES key"""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations or settings.KDF_ITERATIONS,
    )
    return SymmetricKey(kdf.derive(code.encode("utf-8")))


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> bytes:
    return base64.b64decode(value)
