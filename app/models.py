from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer, 'sqlite')


class Base(DeclarativeBase):
    pass


class UserRole(str, Enum):
    MANAGER = 'MANAGER'
    WORKER = 'WORKER'


class JobStatus(str, Enum):
    DRAFT = 'DRAFT'
    IN_PRODUCTION = 'IN_PRODUCTION'
    PRODUCTION_STARTED = 'PRODUCTION_STARTED'
    COMPLETED = 'COMPLETED'


class ItemStatus(str, Enum):
    NOT_STARTED = 'NOT_STARTED'
    WORKING = 'WORKING'
    PARTIALLY_COMPLETE = 'PARTIALLY_COMPLETE'
    COMPLETE = 'COMPLETE'


class WorkType(str, Enum):
    START_WORKING = 'START_WORKING'
    LOG_COMPLETION = 'LOG_COMPLETION'


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name='user_role'), nullable=False, default=UserRole.WORKER, server_default='WORKER'
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Job(Base):
    __tablename__ = 'jobs'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    job_number: Mapped[str | None] = mapped_column(Text)
    created_by_user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('users.id'), nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, name='job_status'), nullable=False, default=JobStatus.DRAFT, server_default='DRAFT'
    )
    production_start_date: Mapped[date | None] = mapped_column(Date)
    estimated_completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class JobItem(Base):
    __tablename__ = 'job_items'
    __table_args__ = (
        CheckConstraint('order_qty >= 0 AND stock_qty >= 0', name='job_items_qty_non_negative_ck'),
        CheckConstraint('order_completed >= 0 AND order_completed <= order_qty', name='job_items_order_bound_ck'),
        CheckConstraint('stock_completed >= 0 AND stock_completed <= stock_qty', name='job_items_stock_bound_ck'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    job_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    order_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    stock_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    order_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    stock_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    status: Mapped[ItemStatus] = mapped_column(
        SQLEnum(ItemStatus, name='item_status'),
        nullable=False,
        default=ItemStatus.NOT_STARTED,
        server_default='NOT_STARTED',
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __mapper_args__ = {'version_id_col': version}


class WorkLog(Base):
    __tablename__ = 'work_logs'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    job_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('users.id'), nullable=False, index=True)
    work_type: Mapped[WorkType] = mapped_column(SQLEnum(WorkType, name='work_type'), nullable=False)
    item_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('job_items.id', ondelete='SET NULL'), index=True)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2))
    notes: Mapped[str | None] = mapped_column(Text)
    items_completed: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class WorkLogPhoto(Base):
    __tablename__ = 'work_log_photos'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    work_log_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('work_logs.id', ondelete='CASCADE'), nullable=False, index=True
    )
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    caption: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    actor_user_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('users.id'))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    job_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('jobs.id', ondelete='CASCADE'))
    ip: Mapped[str | None] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
