"""Engine, session factory and schema bootstrap"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import settings

def _engine_options(url: str) -> dict:
    # SQLite sessions are handed across FastAPI's threadpool
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 10, "max_overflow": 20, "pool_recycle": 3600, "pool_pre_ping": True}

engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def init_db(bind=None) -> None:
    """Create the files, users, dlp_logs and decryption_codes tables if missing"""
    import app.models  # noqa: F401  registers every table on Base.metadata
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    """Request-scoped session; rolled back if the handler raises"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
