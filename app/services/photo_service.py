from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import WorkLog, WorkLogPhoto
from app.services.errors import WorkLogNotFoundError


def attach_photo(
    db: Session,
    *,
    work_log_id: int,
    photo_url: str,
    caption: str | None = None,
) -> WorkLogPhoto:
    clean_url = photo_url.strip()
    if not clean_url:
        raise ValueError('Photo URL is required')

    exists = db.execute(select(WorkLog.id).where(WorkLog.id == work_log_id)).scalar_one_or_none()
    if not exists:
        raise WorkLogNotFoundError('Work log not found')

    clean_caption = (caption or '').strip() or None
    photo = WorkLogPhoto(work_log_id=work_log_id, photo_url=clean_url, caption=clean_caption)
    db.add(photo)
    db.flush()
    return photo


def list_photos(db: Session, *, work_log_id: int) -> list[WorkLogPhoto]:
    return db.execute(
        select(WorkLogPhoto).where(WorkLogPhoto.work_log_id == work_log_id).order_by(WorkLogPhoto.id.asc())
    ).scalars().all()
