"""Decryption-code Pydantic schemas"""
from pydantic import BaseModel, EmailStr
from datetime import datetime

class SendCodeRequest(BaseModel):
    file_id: int
    email: EmailStr
    code: str

    model_config = {
        "json_schema_extra": {
            "example": {"file_id": 1, "email": "bob@x.com", "code": "482913"}
        }
    }

class SendCodeResponse(BaseModel):
    message: str
    expires_at: datetime

class VerifyCodeRequest(BaseModel):
    file_id: int
    code: str

class VerifyCodeResponse(BaseModel):
    valid: bool

class DecryptRequest(BaseModel):
    file_id: int
    code: str

class ExportedKeyResponse(BaseModel):
    key: str
