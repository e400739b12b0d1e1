"""API Routes - Decryption codes and maximum-security files"""
from urllib.parse import quote
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core import cipher
from app.core.code_exchange import code_exchange
from app.core.file_decryptor import decrypt_file
from app.database import get_db
from app.models.user import User
from app.schemas.security import (
    DecryptRequest, ExportedKeyResponse, SendCodeRequest, SendCodeResponse,
    VerifyCodeRequest, VerifyCodeResponse,
)
from app.utils.auth import get_current_active_user
from app.utils.limiter import limiter, SEND_CODE_LIMIT, VERIFY_CODE_LIMIT

router = APIRouter(prefix="/api/security", tags=["Security"])

@router.post("/send-code", response_model=SendCodeResponse)
@limiter.limit(SEND_CODE_LIMIT)
def send_decryption_code(
    request: Request,
    data: SendCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Email a file's decryption code to a recipient (file owner only)"""
    ack = code_exchange.send_code(db, current_user, data.file_id, data.email, data.code)
    return SendCodeResponse(message="Code sent successfully", expires_at=ack.expires_at)

@router.post("/verify-code", response_model=VerifyCodeResponse)
@limiter.limit(VERIFY_CODE_LIMIT)
def verify_decryption_code(
    request: Request,
    data: VerifyCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Check a decryption code. A wrong code returns valid=false."""
    return VerifyCodeResponse(valid=code_exchange.verify_code(db, data.file_id, data.code))

@router.post("/decrypt")
@limiter.limit(VERIFY_CODE_LIMIT)
def decrypt(
    request: Request,
    data: DecryptRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Verify the code and return the decrypted file"""
    record, plaintext = decrypt_file(db, data.file_id, data.code)
    return Response(
        content=plaintext,
        media_type=record.file_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.file_name)}"},
    )

@router.get("/key", response_model=ExportedKeyResponse)
async def new_key(current_user: User = Depends(get_current_active_user)):
    """Fresh AES-256-GCM key as a JWK, for clients that encrypt locally"""
    return ExportedKeyResponse(key=cipher.export_key(cipher.generate_key()))
