"""Engine and per-request session for the catalog database."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from catalog_authz.settings import get_settings


def build_engine(url: str, **kwargs: Any) -> Engine:
    # SQLite connections are shared with FastAPI's threadpool.
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, **kwargs)


engine = build_engine(get_settings().resolved_db_url())

SessionLocal = sessionmaker(bind=engine, autoflush=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    One session per request.

    The request's attribute loader reads through this same session, so a
    resource resolved for an authorization check and the rows the route then
    returns come from one unit of work.
    """

    with SessionLocal() as db:
        yield db
