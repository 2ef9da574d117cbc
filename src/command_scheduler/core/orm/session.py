"""SQLAlchemy engine and session factories for the job store.

This module provides:

* ``create_scheduler_engine``    -- Create a SA engine from a URL.
* ``SchedulerSession``           -- Session with ``expire_on_commit=False``.
* ``scheduler_session_factory``  -- ``sessionmaker`` producing ``SchedulerSession``.
* ``init_schema``                -- Create all scheduler tables.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from command_scheduler.core.orm.base import SchedulerBase


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_scheduler_engine(
    url: str = "sqlite:///scheduler.db",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if not url.startswith("sqlite"):
        return _sa_create_engine(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    if _is_memory_sqlite(url):
        # One shared connection, otherwise every session sees an empty database
        kwargs.setdefault("poolclass", StaticPool)

    engine = _sa_create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    return engine


class SchedulerSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    ``sessionmaker`` always passes its own ``expire_on_commit``, so
    ``scheduler_session_factory`` repeats the setting there.

    Job handles stay readable after commit; callers that need fresh data
    re-read by id after ``expunge_all()``.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def scheduler_session_factory(engine: Engine) -> sessionmaker[SchedulerSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``SchedulerSession`` instances."""
    return sessionmaker(bind=engine, class_=SchedulerSession, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create every scheduler table that does not exist yet."""
    # Register the table classes on the metadata before create_all
    from command_scheduler.core.orm import tables  # noqa: F401

    SchedulerBase.metadata.create_all(engine)
