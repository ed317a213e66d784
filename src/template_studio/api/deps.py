from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from template_studio.db.session import get_db
from template_studio.db.store import RecordStore


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Owner identity forwarded by the authenticating proxy."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def current_actor(x_user_id: str | None = Header(default=None)) -> str | None:
    return x_user_id or None
