from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ItemStatus, Job, JobItem, User, WorkLog, WorkLogPhoto, WorkType
from app.services.allocation_service import AllocationResult, ItemCounters, allocate_completion
from app.services.errors import JobNotFoundError


@dataclass(frozen=True)
class CounterDrift:
    item_id: int
    stored_order_completed: int
    stored_stock_completed: int
    replayed_order_completed: int
    replayed_stock_completed: int


def completion_delta(item_id: int, allocation: AllocationResult) -> dict:
    return {
        'item_id': item_id,
        'qty_completed': allocation.qty_completed,
        'qty_to_order': allocation.add_to_order,
        'qty_to_stock': allocation.add_to_stock,
        'qty_discarded': allocation.qty_discarded,
        'order_completed': allocation.order_completed,
        'stock_completed': allocation.stock_completed,
        'status': allocation.status.value,
    }


def append_work_log(
    db: Session,
    *,
    job_id: int,
    user_id: int,
    work_type: WorkType,
    item_id: int | None = None,
    hours: Decimal | None = None,
    notes: str | None = None,
    items_completed: list[dict] | None = None,
) -> WorkLog:
    log = WorkLog(
        job_id=job_id,
        user_id=user_id,
        work_type=work_type,
        item_id=item_id,
        hours=hours,
        notes=notes,
        items_completed=items_completed or [],
    )
    db.add(log)
    db.flush()
    return log


def list_work_logs(db: Session, *, job_id: int, newest_first: bool = True) -> list[WorkLog]:
    order = WorkLog.id.desc() if newest_first else WorkLog.id.asc()
    return db.execute(select(WorkLog).where(WorkLog.job_id == job_id).order_by(order)).scalars().all()


def list_work_logs_for_display(db: Session, *, job_id: int) -> list[dict]:
    if not db.execute(select(Job.id).where(Job.id == job_id)).scalar_one_or_none():
        raise JobNotFoundError('Job not found')

    rows = db.execute(
        select(WorkLog, User.name, User.email)
        .join(User, User.id == WorkLog.user_id)
        .where(WorkLog.job_id == job_id)
        .order_by(WorkLog.id.desc())
    ).all()
    log_ids = [log.id for log, _name, _email in rows]
    photos_by_log: dict[int, list[dict]] = {log_id: [] for log_id in log_ids}
    if log_ids:
        photos = db.execute(
            select(WorkLogPhoto).where(WorkLogPhoto.work_log_id.in_(log_ids)).order_by(WorkLogPhoto.id.asc())
        ).scalars().all()
        for photo in photos:
            photos_by_log[photo.work_log_id].append(
                {'id': photo.id, 'photo_url': photo.photo_url, 'caption': photo.caption}
            )

    return [
        {
            'id': log.id,
            'job_id': log.job_id,
            'work_type': log.work_type.value,
            'item_id': log.item_id,
            'hours': log.hours,
            'notes': log.notes,
            'items_completed': log.items_completed,
            'created_at': log.created_at,
            'user': {'id': log.user_id, 'name': name, 'email': email},
            'photos': photos_by_log[log.id],
        }
        for log, name, email in rows
    ]


def replay_item_counters(db: Session, *, job_id: int) -> dict[int, ItemCounters]:
    """Rebuild every item's counters by folding the job's completion entries in ledger order."""
    items = db.execute(select(JobItem).where(JobItem.job_id == job_id).order_by(JobItem.id.asc())).scalars().all()
    state = {
        item.id: ItemCounters(order_qty=item.order_qty, stock_qty=item.stock_qty)
        for item in items
    }

    started = db.execute(
        select(WorkLog.item_id).where(
            WorkLog.job_id == job_id,
            WorkLog.work_type == WorkType.START_WORKING,
            WorkLog.item_id.is_not(None),
        )
    ).scalars().all()
    for item_id in started:
        counters = state.get(item_id)
        if counters and counters.status == ItemStatus.NOT_STARTED:
            state[item_id] = replace(counters, status=ItemStatus.WORKING)

    for log in list_work_logs(db, job_id=job_id, newest_first=False):
        if log.work_type != WorkType.LOG_COMPLETION:
            continue
        for delta in log.items_completed or []:
            counters = state.get(delta.get('item_id'))
            if counters is None:
                continue
            result = allocate_completion(counters, int(delta.get('qty_completed') or 0))
            state[delta['item_id']] = replace(
                counters,
                order_completed=result.order_completed,
                stock_completed=result.stock_completed,
                status=result.status,
            )
    return state


def detect_counter_drift(db: Session, *, job_id: int) -> list[CounterDrift]:
    if not db.execute(select(Job.id).where(Job.id == job_id)).scalar_one_or_none():
        raise JobNotFoundError('Job not found')

    replayed = replay_item_counters(db, job_id=job_id)
    items = db.execute(select(JobItem).where(JobItem.job_id == job_id).order_by(JobItem.id.asc())).scalars().all()
    drift: list[CounterDrift] = []
    for item in items:
        expected = replayed[item.id]
        if (item.order_completed, item.stock_completed) == (expected.order_completed, expected.stock_completed):
            continue
        drift.append(
            CounterDrift(
                item_id=item.id,
                stored_order_completed=item.order_completed,
                stored_stock_completed=item.stock_completed,
                replayed_order_completed=expected.order_completed,
                replayed_stock_completed=expected.stock_completed,
            )
        )
    return drift
