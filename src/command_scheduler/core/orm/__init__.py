"""SQLAlchemy ORM layer for the job store."""

from command_scheduler.core.orm.base import SchedulerBase, UTCDateTime
from command_scheduler.core.orm.session import (
    SchedulerSession,
    create_scheduler_engine,
    init_schema,
    scheduler_session_factory,
)
from command_scheduler.core.orm.tables import JobTable

__all__ = [
    "JobTable",
    "SchedulerBase",
    "SchedulerSession",
    "UTCDateTime",
    "create_scheduler_engine",
    "init_schema",
    "scheduler_session_factory",
]
