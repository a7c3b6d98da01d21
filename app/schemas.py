from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Union

from pydantic import BaseModel, Field

from app.services.completion_service import MAX_HOURS


class StartWorkingAction(BaseModel):
    work_type: Literal['start_working']
    job_id: int
    item_id: int = Field(gt=0)


class CompletionEntryIn(BaseModel):
    item_id: int = Field(gt=0)
    qty_completed: int = Field(gt=0)


class LogCompletionAction(BaseModel):
    work_type: Literal['log_completion']
    job_id: int
    hours: Decimal | None = Field(default=None, ge=0, le=MAX_HOURS, decimal_places=2)
    notes: str | None = None
    entries: list[CompletionEntryIn] = Field(min_length=1)


WorkAction = Union[StartWorkingAction, LogCompletionAction]


class StartWorkingIn(BaseModel):
    item_id: int = Field(gt=0)


class LogCompletionIn(BaseModel):
    hours: Decimal | None = Field(default=None, ge=0, le=MAX_HOURS, decimal_places=2)
    notes: str | None = None
    entries: list[CompletionEntryIn] = Field(min_length=1)


class PhotoIn(BaseModel):
    photo_url: str = Field(min_length=1)
    caption: str | None = None


class ItemProgressOut(BaseModel):
    item_id: int
    qty_completed: int
    qty_to_order: int
    qty_to_stock: int
    qty_discarded: int
    order_completed: int
    stock_completed: int
    status: str


class StartWorkingOut(BaseModel):
    entry_id: int
    item_id: int
    item_status: str
    job_status: str | None
    warnings: list[str] = []


class LogCompletionOut(BaseModel):
    entry_id: int
    per_item: list[ItemProgressOut]
    skipped_item_ids: list[int] = []
    job_status: str | None
    warnings: list[str] = []


class PhotoOut(BaseModel):
    id: int
    work_log_id: int
    photo_url: str
    caption: str | None
    created_at: datetime | None = None


class JobStatusOut(BaseModel):
    job_id: int
    status: str
    changed: bool


class CounterDriftOut(BaseModel):
    item_id: int
    stored_order_completed: int
    stored_stock_completed: int
    replayed_order_completed: int
    replayed_stock_completed: int
