from __future__ import annotations

from fastapi import FastAPI, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth import Principal, Role
from app.config import settings
from app.db import SessionLocal
from app.models import User


def load_principal_from_header(db: Session, raw_user_id: str | None) -> Principal | None:
    if not raw_user_id or not raw_user_id.strip().isdigit():
        return None

    user = db.execute(select(User).where(User.id == int(raw_user_id.strip()))).scalar_one_or_none()
    if not user:
        return None

    role = Role(user.role.value if hasattr(user.role, 'value') else user.role)
    return Principal(id=user.id, name=user.name, role=role, active=user.active)


def install_actor_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def actor_middleware(request: Request, call_next):
        raw_user_id = request.headers.get(settings.actor_header_name)
        request.state.principal = None
        if raw_user_id:
            with SessionLocal() as db:
                request.state.principal = load_principal_from_header(db, raw_user_id)
        return await call_next(request)
