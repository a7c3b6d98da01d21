from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Job, JobItem
from app.services.errors import JobNotFoundError
from app.services.work_log_service import list_work_logs_for_display


def _item_row(item: JobItem) -> dict:
    return {
        'id': item.id,
        'sku': item.sku,
        'name': item.name,
        'position': item.position,
        'order_qty': item.order_qty,
        'stock_qty': item.stock_qty,
        'order_completed': item.order_completed,
        'stock_completed': item.stock_completed,
        'status': item.status.value,
    }


def get_job_snapshot(db: Session, *, job_id: int) -> dict:
    job = db.execute(select(Job).where(Job.id == job_id)).scalar_one_or_none()
    if not job:
        raise JobNotFoundError('Job not found')

    items = db.execute(
        select(JobItem).where(JobItem.job_id == job_id).order_by(JobItem.position.asc(), JobItem.id.asc())
    ).scalars().all()
    return {
        'job': {
            'id': job.id,
            'job_number': job.job_number,
            'status': job.status.value,
            'production_start_date': job.production_start_date,
            'estimated_completion_date': job.estimated_completion_date,
            'completed_at': job.completed_at,
            'created_at': job.created_at,
        },
        'items': [_item_row(item) for item in items],
        'work_logs': list_work_logs_for_display(db, job_id=job_id),
    }
