"""Record store: file metadata and DLP audit log persistence"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import NotFoundError
from app.models.dlp_log import DlpAction, DlpLog
from app.models.file import FileRecord
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

FILE_VIEWS = ("all", "recent", "starred", "trash")
UPDATABLE_FIELDS = ("file_name", "is_starred", "is_trash")


def create_file_record(db: Session, **fields) -> FileRecord:
    record = FileRecord(**fields)
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"File {record.id} created for user {record.user_id} ({record.security_level.value})")
    return record


def get_file_record(db: Session, file_id: int, user: Optional[User] = None, owner_only: bool = False) -> FileRecord:
    """
    Fetch a file. With a user, non-owners get NotFoundError; admins may read any
    file unless owner_only is set.
    """
    record = db.query(FileRecord).filter(FileRecord.id == file_id).first()
    if record is None:
        raise NotFoundError()
    if user is not None and record.user_id != user.id:
        if owner_only or user.role != UserRole.ADMIN:
            raise NotFoundError()
    return record


def update_file_record(db: Session, file_id: int, user: User, **patch) -> FileRecord:
    record = get_file_record(db, file_id, user, owner_only=True)
    for field, value in patch.items():
        if field in UPDATABLE_FIELDS and value is not None:
            setattr(record, field, value)
    db.commit()
    db.refresh(record)
    return record


def touch_file_record(db: Session, record: FileRecord) -> None:
    record.last_accessed = datetime.utcnow()
    db.commit()


def delete_file_record(db: Session, record: FileRecord) -> None:
    db.delete(record)
    db.commit()
    logger.info(f"File {record.id} permanently deleted")


def list_file_records(db: Session, user: User, view: str = "all", search: Optional[str] = None) -> List[FileRecord]:
    query = db.query(FileRecord).filter(FileRecord.user_id == user.id)

    if view == "trash":
        query = query.filter(FileRecord.is_trash.is_(True))
    else:
        query = query.filter(FileRecord.is_trash.is_(False))
        if view == "starred":
            query = query.filter(FileRecord.is_starred.is_(True))

    if search:
        query = query.filter(func.lower(FileRecord.file_name).contains(search.lower()))

    if view == "recent":
        query = query.order_by(FileRecord.last_accessed.desc())
    else:
        query = query.order_by(FileRecord.upload_date.desc(), FileRecord.id.desc())

    return query.all()


def storage_stats(db: Session, user: User) -> dict:
    total_used, file_count = (
        db.query(func.coalesce(func.sum(FileRecord.file_size), 0), func.count(FileRecord.id))
        .filter(FileRecord.user_id == user.id, FileRecord.is_trash.is_(False))
        .one()
    )
    return {"total_used": int(total_used), "file_count": int(file_count)}


def create_dlp_log(
    db: Session,
    user_id: Optional[int],
    file_name: str,
    file_size: int,
    detected_types: Iterable[str],
    action: DlpAction,
) -> DlpLog:
    entry = DlpLog(
        user_id=user_id,
        file_name=file_name,
        file_size=file_size,
        detected_types=list(dict.fromkeys(detected_types)),
        action=action,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(f"DLP log {entry.id}: {action.value} {file_name!r} types={entry.detected_types}")
    return entry


def list_dlp_logs(db: Session, limit: Optional[int] = None) -> List[DlpLog]:
    """Most recent entries first, capped at DLP_LOG_LIST_LIMIT"""
    cap = settings.DLP_LOG_LIST_LIMIT
    limit = cap if limit is None else max(0, min(limit, cap))
    return (
        db.query(DlpLog)
        .order_by(DlpLog.timestamp.desc(), DlpLog.id.desc())
        .limit(limit)
        .all()
    )
