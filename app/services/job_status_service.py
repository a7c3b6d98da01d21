from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ItemStatus, Job, JobItem, JobStatus
from app.services.audit_service import log_audit
from app.services.errors import JobNotFoundError

logger = logging.getLogger(__name__)

STARTED_ITEM_STATUSES = {ItemStatus.WORKING, ItemStatus.PARTIALLY_COMPLETE, ItemStatus.COMPLETE}

JOB_STATUS_RANK = {
    JobStatus.DRAFT: 0,
    JobStatus.IN_PRODUCTION: 1,
    JobStatus.PRODUCTION_STARTED: 2,
    JobStatus.COMPLETED: 3,
}


@dataclass(frozen=True)
class JobStatusChange:
    job_id: int
    previous_status: JobStatus
    status: JobStatus
    changed: bool
    completed_at: datetime | None
    item_count: int


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def derive_job_status(item_statuses: Iterable[ItemStatus]) -> JobStatus | None:
    """Return the status implied by the items, or None to leave the job alone."""
    statuses = list(item_statuses)
    if not statuses:
        return None
    if all(status == ItemStatus.COMPLETE for status in statuses):
        return JobStatus.COMPLETED
    if any(status in STARTED_ITEM_STATUSES for status in statuses):
        return JobStatus.PRODUCTION_STARTED
    return None


def next_job_status(current: JobStatus, derived: JobStatus | None) -> JobStatus:
    if derived is None:
        return current
    # Job status only moves forward.
    if JOB_STATUS_RANK[derived] <= JOB_STATUS_RANK[current]:
        return current
    return derived


def recalculate_job_status(
    db: Session,
    *,
    job_id: int,
    actor_user_id: int | None = None,
    ip: str | None = None,
) -> JobStatusChange:
    job = db.execute(
        select(Job).where(Job.id == job_id).with_for_update().execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not job:
        raise JobNotFoundError('Job not found')

    item_statuses = db.execute(select(JobItem.status).where(JobItem.job_id == job_id)).scalars().all()
    previous = job.status
    target = next_job_status(previous, derive_job_status(item_statuses))

    if target == previous:
        return JobStatusChange(
            job_id=job.id,
            previous_status=previous,
            status=previous,
            changed=False,
            completed_at=job.completed_at,
            item_count=len(item_statuses),
        )

    now = _now()
    job.status = target
    job.updated_at = now
    if target == JobStatus.COMPLETED and job.completed_at is None:
        job.completed_at = now

    log_audit(
        db,
        actor_user_id=actor_user_id,
        action='JOB_STATUS_CHANGED',
        job_id=job.id,
        ip=ip,
        metadata={'from': previous.value, 'to': target.value},
    )
    db.flush()
    logger.info('Job %s status %s -> %s', job.id, previous.value, target.value)
    return JobStatusChange(
        job_id=job.id,
        previous_status=previous,
        status=target,
        changed=True,
        completed_at=job.completed_at,
        item_count=len(item_statuses),
    )
