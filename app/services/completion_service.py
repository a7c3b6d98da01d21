from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.models import ItemStatus, Job, JobItem, User, WorkLog, WorkType
from app.services.allocation_service import ItemCounters, allocate_completion
from app.services.errors import (
    CompletionConflictError,
    CompletionValidationError,
    ItemNotFoundError,
    JobNotFoundError,
)
from app.services.job_status_service import JobStatusChange, recalculate_job_status
from app.services.work_log_service import append_work_log, completion_delta

logger = logging.getLogger(__name__)

T = TypeVar('T')

AGGREGATION_WARNING = 'Job status could not be updated; it will be recalculated on the next update'

# work_logs.hours is NUMERIC(6, 2).
MAX_HOURS = Decimal('9999.99')


@dataclass(frozen=True)
class CompletionEntry:
    item_id: int
    qty_completed: int


@dataclass
class StartWorkingOutcome:
    work_log: WorkLog
    item_id: int
    item_status: ItemStatus
    job_status: JobStatusChange | None
    warnings: list[str] = field(default_factory=list)


@dataclass
class CompletionOutcome:
    work_log: WorkLog
    deltas: list[dict]
    skipped_item_ids: list[int]
    job_status: JobStatusChange | None
    warnings: list[str] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_completion_request(entries: Sequence[CompletionEntry], hours: Decimal | None) -> None:
    if not entries:
        raise CompletionValidationError('At least one completion entry is required')
    for entry in entries:
        if not _is_positive_int(entry.item_id):
            raise CompletionValidationError('Each completion entry needs a valid item id')
        if not _is_positive_int(entry.qty_completed):
            raise CompletionValidationError(f'Completed quantity must be a positive whole number for item {entry.item_id}')
    if hours is not None:
        hours = Decimal(hours)
        if hours < 0:
            raise CompletionValidationError('Hours cannot be negative')
        if hours > MAX_HOURS:
            raise CompletionValidationError(f'Hours cannot exceed {MAX_HOURS}')
        if hours.as_tuple().exponent < -2:
            raise CompletionValidationError('Hours allow at most two decimal places')


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    cleaned = notes.strip()
    return cleaned or None


def _get_job(db: Session, job_id: int) -> Job:
    job = db.execute(select(Job).where(Job.id == job_id)).scalar_one_or_none()
    if not job:
        raise JobNotFoundError('Job not found')
    return job


def _ensure_actor(db: Session, actor_user_id: int) -> None:
    active = db.execute(select(User.active).where(User.id == actor_user_id)).scalar_one_or_none()
    if not active:
        raise PermissionError('Actor is not allowed to log work')


def _lock_items(db: Session, *, job_id: int, item_ids: set[int]) -> dict[int, JobItem]:
    if not item_ids:
        return {}
    # Lock in id order so concurrent submissions touching the same items cannot deadlock.
    rows = db.execute(
        select(JobItem)
        .where(JobItem.job_id == job_id, JobItem.id.in_(sorted(item_ids)))
        .order_by(JobItem.id.asc())
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().all()
    return {row.id: row for row in rows}


def _run_in_transaction(db: Session, work: Callable[[], T], *, max_retries: int) -> T:
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work()
            db.commit()
            return result
        except StaleDataError as exc:
            db.rollback()
            if attempt > max_retries:
                raise CompletionConflictError('Item was updated concurrently; please retry') from exc
            logger.warning('Concurrent item update detected, retrying (attempt %s of %s)', attempt, max_retries)
        except Exception:
            db.rollback()
            raise


def _aggregate_after_commit(
    db: Session, *, job_id: int, actor_user_id: int
) -> tuple[JobStatusChange | None, list[str]]:
    try:
        change = recalculate_job_status(db, job_id=job_id, actor_user_id=actor_user_id)
        db.commit()
    except (SQLAlchemyError, LookupError):
        db.rollback()
        logger.warning('Job status aggregation failed for job %s', job_id, exc_info=True)
        return None, [AGGREGATION_WARNING]
    return change, []


def start_working(
    db: Session,
    *,
    job_id: int,
    item_id: int,
    actor_user_id: int,
    max_retries: int | None = None,
) -> StartWorkingOutcome:
    if not _is_positive_int(item_id):
        raise CompletionValidationError('item_id is required')

    def _apply() -> tuple[WorkLog, ItemStatus]:
        _get_job(db, job_id)
        _ensure_actor(db, actor_user_id)
        item = _lock_items(db, job_id=job_id, item_ids={item_id}).get(item_id)
        if not item:
            raise ItemNotFoundError('Item not found on this job')

        if item.status == ItemStatus.NOT_STARTED:
            item.status = ItemStatus.WORKING
            item.updated_at = _now()
        else:
            logger.info('Item %s already %s; start working recorded without status change', item.id, item.status.value)

        log = append_work_log(
            db,
            job_id=job_id,
            user_id=actor_user_id,
            work_type=WorkType.START_WORKING,
            item_id=item.id,
            notes='Started working',
        )
        return log, item.status

    retries = settings.completion_max_retries if max_retries is None else max_retries
    log, item_status = _run_in_transaction(db, _apply, max_retries=retries)
    job_status, warnings = _aggregate_after_commit(db, job_id=job_id, actor_user_id=actor_user_id)
    return StartWorkingOutcome(
        work_log=log,
        item_id=item_id,
        item_status=item_status,
        job_status=job_status,
        warnings=warnings,
    )


def log_completion(
    db: Session,
    *,
    job_id: int,
    actor_user_id: int,
    entries: Sequence[CompletionEntry],
    hours: Decimal | None = None,
    notes: str | None = None,
    max_retries: int | None = None,
    reject_overage: bool | None = None,
) -> CompletionOutcome:
    """Apply a worker's completion report to the job's items and append one ledger entry.

    Every item update and the ledger entry commit together. Entries naming the
    same item run in order, each seeing the counters left by the previous one.
    Items that do not belong to the job are skipped. Job status is recalculated
    after the commit; a failure there is returned as a warning.
    """
    validate_completion_request(entries, hours)
    clean_notes = _clean_notes(notes)
    strict = settings.reject_completion_overage if reject_overage is None else reject_overage

    def _apply() -> tuple[WorkLog, list[dict], list[int]]:
        _get_job(db, job_id)
        _ensure_actor(db, actor_user_id)
        items = _lock_items(db, job_id=job_id, item_ids={entry.item_id for entry in entries})

        deltas: list[dict] = []
        skipped: list[int] = []
        for entry in entries:
            item = items.get(entry.item_id)
            if not item:
                skipped.append(entry.item_id)
                continue

            result = allocate_completion(
                ItemCounters(
                    order_qty=item.order_qty,
                    stock_qty=item.stock_qty,
                    order_completed=item.order_completed,
                    stock_completed=item.stock_completed,
                    status=item.status,
                ),
                entry.qty_completed,
            )
            if result.qty_discarded:
                if strict:
                    raise CompletionValidationError(
                        f'Item {item.id} only has {result.allocated} units left to complete'
                    )
                logger.warning(
                    'Discarding %s over-reported units for item %s on job %s',
                    result.qty_discarded,
                    item.id,
                    job_id,
                )

            item.order_completed = result.order_completed
            item.stock_completed = result.stock_completed
            item.status = result.status
            item.updated_at = _now()
            deltas.append(completion_delta(item.id, result))

        if skipped:
            logger.info('Skipped unknown items %s on job %s', skipped, job_id)

        # Flushing here runs the versioned UPDATEs before the ledger insert.
        db.flush()
        log = append_work_log(
            db,
            job_id=job_id,
            user_id=actor_user_id,
            work_type=WorkType.LOG_COMPLETION,
            hours=Decimal(hours) if hours is not None else None,
            notes=clean_notes,
            items_completed=deltas,
        )
        return log, deltas, skipped

    retries = settings.completion_max_retries if max_retries is None else max_retries
    log, deltas, skipped = _run_in_transaction(db, _apply, max_retries=retries)
    job_status, warnings = _aggregate_after_commit(db, job_id=job_id, actor_user_id=actor_user_id)
    return CompletionOutcome(
        work_log=log,
        deltas=deltas,
        skipped_item_ids=skipped,
        job_status=job_status,
        warnings=warnings,
    )
