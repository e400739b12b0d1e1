"""Application Configuration"""
import os
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional

class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "FortiFile"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./fortifile.db")

    # Storage (S3 compatible, e.g. DigitalOcean Spaces). Falls back to UPLOAD_DIR.
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "./instance/uploads")
    DO_SPACES_KEY: Optional[str] = os.getenv("DO_SPACES_KEY")
    DO_SPACES_SECRET: Optional[str] = os.getenv("DO_SPACES_SECRET")
    DO_SPACES_ENDPOINT: str = os.getenv("DO_SPACES_ENDPOINT", "https://sgp1.digitaloceanspaces.com")
    DO_SPACES_REGION: str = os.getenv("DO_SPACES_REGION", "sgp1")
    DO_SPACES_BUCKET: str = os.getenv("DO_SPACES_BUCKET", "fortifile")

    # Mail (SMTP2GO HTTP API)
    SMTP2GO_API_KEY: Optional[str] = os.getenv("SMTP2GO_API_KEY")
    SMTP2GO_API_URL: str = "https://api.smtp2go.com/v3/email/send"
    MAIL_SENDER_EMAIL: str = "noreply@fortifile.app"
    MAIL_SENDER_NAME: str = "FortiFile Security"

    # DLP
    DLP_SCANNABLE_EXTENSIONS: List[str] = [".txt", ".md", ".json"]
    # Per security level: allow | warn | block
    DLP_LEVEL_MODES: Dict[str, str] = {
        "standard": "warn",
        "high": "warn",
        "maximum": "warn",
    }
    # Per security level: categories that always block, e.g. {"high": ["SSN"]}
    DLP_BLOCK_CATEGORIES: Dict[str, List[str]] = {}
    DLP_LOG_LIST_LIMIT: int = 100

    # Maximum-tier encryption and decryption codes
    KDF_ITERATIONS: int = 310_000
    DECRYPTION_CODE_TTL_MINUTES: int = 60
    DECRYPTION_CODE_MAX_ATTEMPTS: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
