from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from .config import settings


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure the parent folder exists for SQLite file-based DB URLs like:
      sqlite:///./data/clubhub.sqlite
      sqlite:////absolute/path/to/db.sqlite
    """
    if not database_url.startswith("sqlite:///") or _is_sqlite_memory(database_url):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def sqlite_pragmas(engine: Engine) -> None:
    """
    Pragmas that make SQLite behave for a multi-request API:
    WAL for concurrent readers, enforced foreign keys, and a busy timeout so a
    second writer waits for the first transaction instead of failing.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    - SQLite gets pragmas + check_same_thread=False for FastAPI
    - In-memory SQLite shares one connection (StaticPool) so every session
      sees the same database
    - Postgres works by just changing DATABASE_URL
    """
    kwargs: Dict[str, Any] = {"echo": False}

    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)

    if _is_sqlite(database_url):
        sqlite_pragmas(engine)

    return engine


# Single, shared engine for the app process
engine: Engine = build_engine(settings.resolved_database_url)


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    Keep this list current as you add tables.
    """
    from .models.user import User  # noqa: F401
    from .models.auth import AuthToken, OtpCode  # noqa: F401
    from .models.club import Club  # noqa: F401
    from .models.membership import Membership  # noqa: F401
    from .models.invite import Invite  # noqa: F401
    from .models.application import Application  # noqa: F401
    from .models.event import Event, EventRegistration  # noqa: F401
    from .models.audit_log import AuditLog  # noqa: F401
    from .models.notification import Notification  # noqa: F401


def init_db(bind: Engine | None = None) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    SQLModel.metadata.create_all(bind or engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency:
        def route(db: Session = Depends(get_db)):
            ...
    One session per request. Handlers commit once, after every row the
    request touches has been staged, so a request's writes land together.
    """
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Context manager for scripts/jobs that need commit/rollback safety.

    Usage:
        with session_scope() as db:
            db.add(...)
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
