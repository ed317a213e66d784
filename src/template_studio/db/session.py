from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from template_studio.db.base import Base
from template_studio.settings import get_settings

logger = logging.getLogger(__name__)


def make_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite files get their parent directory created; in-memory SQLite
    databases share one connection so every session sees the same schema.
    """
    connect_args = {}
    engine_kwargs = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        db_path = make_url(url).database
        if db_path and db_path != ":memory:":
            path = Path(db_path)
            if not path.is_absolute():
                path = Path.cwd() / path
            path.parent.mkdir(parents=True, exist_ok=True)
        else:
            engine_kwargs["poolclass"] = StaticPool
    logger.debug("Opening database %s", make_url(url).render_as_string(hide_password=True))
    return create_engine(url, future=True, echo=echo, connect_args=connect_args, **engine_kwargs)


def session_factory(bind: Engine) -> sessionmaker:
    # records stay readable after commit; services return them as dicts
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


_settings = get_settings()
engine = make_engine(_settings.sql_db_url, echo=_settings.sql_echo)
SessionLocal = session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    """Create every table that does not exist yet."""
    from template_studio.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session, closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
