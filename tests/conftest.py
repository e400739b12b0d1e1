import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import settings
from app.database import Base, get_db, init_db
from app.models import FileRecord, SecurityLevel, User, UserRole
from app.services.email_service import email_service
from app.utils.auth import token_for
from app.utils.limiter import limiter
from app.utils.storage import storage_manager

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    init_db(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    # Full-strength PBKDF2 is slow; the mapping is the same at any iteration count
    monkeypatch.setattr(settings, "KDF_ITERATIONS", 1000)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(storage_manager, "enabled", False)
    monkeypatch.setattr(storage_manager, "base_dir", tmp_path)
    return storage_manager


@pytest.fixture
def mailer():
    """Mail transport stub that accepts every message"""
    mock = MagicMock()
    mock.send_decryption_code_email.return_value = True
    return mock


@pytest.fixture
def sent_emails():
    with patch.object(email_service, "send_decryption_code_email", return_value=True) as mock_send:
        yield mock_send


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides = {}


def _make_user(db, username, role=UserRole.USER):
    user = User(
        username=username,
        email=f"{username}@co.com",
        hashed_password="unused-in-token-tests",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def alice(db):
    return _make_user(db, "alice")


@pytest.fixture
def bob(db):
    return _make_user(db, "bob")


@pytest.fixture
def admin(db):
    return _make_user(db, "root", UserRole.ADMIN)


def auth_headers(user):
    token = token_for(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def encrypted_file(db, alice):
    record = FileRecord(
        user_id=alice.id,
        file_name="secret.txt",
        file_size=10,
        file_type="text/plain",
        file_path=f"{alice.id}/secret",
        security_level=SecurityLevel.MAXIMUM,
        is_encrypted=True,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
