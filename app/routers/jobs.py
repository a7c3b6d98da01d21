from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.auth import Principal, Role, require_role
from app.db import get_db
from app.dependencies import get_client_ip
from app.schemas import CounterDriftOut, JobStatusOut
from app.services.errors import JobNotFoundError
from app.services.job_snapshot_service import get_job_snapshot
from app.services.job_status_service import recalculate_job_status
from app.services.work_log_service import detect_counter_drift, list_work_logs_for_display

router = APIRouter(prefix='/jobs', tags=['jobs'])


@router.get('/{job_id}')
def job_snapshot(
    job_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER, Role.WORKER)),
    db: Session = Depends(get_db),
):
    try:
        return get_job_snapshot(db, job_id=job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get('/{job_id}/work-logs')
def job_work_logs(
    job_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER, Role.WORKER)),
    db: Session = Depends(get_db),
):
    try:
        return {'logs': list_work_logs_for_display(db, job_id=job_id)}
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post('/{job_id}/update-status', response_model=JobStatusOut)
def update_job_status(
    job_id: int,
    request: Request,
    principal: Principal = Depends(require_role(Role.MANAGER)),
    db: Session = Depends(get_db),
):
    try:
        change = recalculate_job_status(
            db,
            job_id=job_id,
            actor_user_id=principal.id,
            ip=get_client_ip(request),
        )
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    db.commit()
    if change.item_count == 0:
        return JobStatusOut(job_id=job_id, status='no_items', changed=False)
    if not change.changed:
        return JobStatusOut(job_id=job_id, status='unchanged', changed=False)
    return JobStatusOut(job_id=job_id, status=change.status.value, changed=True)


@router.get('/{job_id}/reconciliation', response_model=list[CounterDriftOut])
def job_reconciliation(
    job_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
    db: Session = Depends(get_db),
):
    try:
        drift = detect_counter_drift(db, job_id=job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [
        CounterDriftOut(
            item_id=row.item_id,
            stored_order_completed=row.stored_order_completed,
            stored_stock_completed=row.stored_stock_completed,
            replayed_order_completed=row.replayed_order_completed,
            replayed_stock_completed=row.replayed_stock_completed,
        )
        for row in drift
    ]
