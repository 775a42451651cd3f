from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from common_core.config import settings


class Base(DeclarativeBase):
    pass


def _ensure_sqlite_dir(db_url: str) -> None:
    url = make_url(db_url)
    if url.database and url.database != ":memory:":
        parent = os.path.dirname(os.path.abspath(url.database))
        os.makedirs(parent, exist_ok=True)


def make_engine(db_url: str):
    connect_args = {}
    if db_url.startswith("sqlite"):
        _ensure_sqlite_dir(db_url)
        # TestClient and background tasks touch the session from other threads
        connect_args["check_same_thread"] = False
    return create_engine(db_url, pool_pre_ping=True, future=True, connect_args=connect_args)


def make_session(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


engine = make_engine(settings.database_url)

SessionLocal = make_session(engine)
