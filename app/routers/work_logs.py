from __future__ import annotations

from typing import Annotated, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth import Principal, Role, require_role
from app.db import get_db
from app.schemas import (
    LogCompletionAction,
    LogCompletionIn,
    LogCompletionOut,
    PhotoIn,
    PhotoOut,
    StartWorkingAction,
    StartWorkingIn,
    StartWorkingOut,
    WorkAction,
)
from app.services.completion_service import (
    CompletionEntry,
    CompletionOutcome,
    StartWorkingOutcome,
    log_completion,
    start_working,
)
from app.services.errors import CompletionConflictError
from app.services.photo_service import attach_photo, list_photos

router = APIRouter(tags=['work-logs'])

any_staff = require_role(Role.MANAGER, Role.WORKER)


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, LookupError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, CompletionConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _start_working_response(outcome: StartWorkingOutcome) -> StartWorkingOut:
    return StartWorkingOut(
        entry_id=outcome.work_log.id,
        item_id=outcome.item_id,
        item_status=outcome.item_status.value,
        job_status=outcome.job_status.status.value if outcome.job_status else None,
        warnings=outcome.warnings,
    )


def _log_completion_response(outcome: CompletionOutcome) -> LogCompletionOut:
    return LogCompletionOut(
        entry_id=outcome.work_log.id,
        per_item=outcome.deltas,
        skipped_item_ids=outcome.skipped_item_ids,
        job_status=outcome.job_status.status.value if outcome.job_status else None,
        warnings=outcome.warnings,
    )


def _do_start_working(db: Session, *, job_id: int, item_id: int, principal: Principal) -> StartWorkingOut:
    try:
        outcome = start_working(db, job_id=job_id, item_id=item_id, actor_user_id=principal.id)
    except (ValueError, LookupError, PermissionError, CompletionConflictError) as exc:
        _raise_http(exc)
    return _start_working_response(outcome)


def _do_log_completion(
    db: Session, *, job_id: int, payload: LogCompletionIn | LogCompletionAction, principal: Principal
) -> LogCompletionOut:
    try:
        outcome = log_completion(
            db,
            job_id=job_id,
            actor_user_id=principal.id,
            entries=[CompletionEntry(item_id=row.item_id, qty_completed=row.qty_completed) for row in payload.entries],
            hours=payload.hours,
            notes=payload.notes,
        )
    except (ValueError, LookupError, PermissionError, CompletionConflictError) as exc:
        _raise_http(exc)
    return _log_completion_response(outcome)


@router.post('/jobs/{job_id}/start-working', response_model=StartWorkingOut)
def start_working_endpoint(
    job_id: int,
    payload: StartWorkingIn,
    principal: Principal = Depends(any_staff),
    db: Session = Depends(get_db),
):
    return _do_start_working(db, job_id=job_id, item_id=payload.item_id, principal=principal)


@router.post('/jobs/{job_id}/log-completion', response_model=LogCompletionOut)
def log_completion_endpoint(
    job_id: int,
    payload: LogCompletionIn,
    principal: Principal = Depends(any_staff),
    db: Session = Depends(get_db),
):
    return _do_log_completion(db, job_id=job_id, payload=payload, principal=principal)


@router.post('/work-logs', response_model=StartWorkingOut | LogCompletionOut)
def submit_work_action(
    action: Annotated[WorkAction, Body(discriminator='work_type')],
    principal: Principal = Depends(any_staff),
    db: Session = Depends(get_db),
):
    if isinstance(action, StartWorkingAction):
        return _do_start_working(db, job_id=action.job_id, item_id=action.item_id, principal=principal)
    return _do_log_completion(db, job_id=action.job_id, payload=action, principal=principal)


@router.post('/work-logs/{work_log_id}/photos', response_model=PhotoOut, status_code=status.HTTP_201_CREATED)
def attach_photo_endpoint(
    work_log_id: int,
    payload: PhotoIn,
    principal: Principal = Depends(any_staff),
    db: Session = Depends(get_db),
):
    try:
        photo = attach_photo(db, work_log_id=work_log_id, photo_url=payload.photo_url, caption=payload.caption)
    except (ValueError, LookupError) as exc:
        db.rollback()
        _raise_http(exc)
    db.commit()
    return PhotoOut(
        id=photo.id,
        work_log_id=photo.work_log_id,
        photo_url=photo.photo_url,
        caption=photo.caption,
        created_at=photo.created_at,
    )


@router.get('/work-logs/{work_log_id}/photos', response_model=list[PhotoOut])
def list_photos_endpoint(
    work_log_id: int,
    principal: Principal = Depends(any_staff),
    db: Session = Depends(get_db),
):
    return [
        PhotoOut(
            id=photo.id,
            work_log_id=photo.work_log_id,
            photo_url=photo.photo_url,
            caption=photo.caption,
            created_at=photo.created_at,
        )
        for photo in list_photos(db, work_log_id=work_log_id)
    ]
