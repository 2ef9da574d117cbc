"""Job table definition.

Tags:
    orm, sqlalchemy, tables, scheduling

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime

from sqlalchemy import Boolean, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from command_scheduler.core.orm.base import SchedulerBase, UTCDateTime
from command_scheduler.core.timestamps import utc_now


class JobTable(SchedulerBase):
    __tablename__ = "scheduled_jobs"
    __table_args__ = (Index("ix_scheduled_jobs_priority", "priority"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    command: Mapped[str] = mapped_column(Text, nullable=False)
    arguments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cron_expression: Mapped[str | None] = mapped_column(Text)
    mode: Mapped[str] = mapped_column(Text, default="auto", nullable=False)
    delay_until: Mapped[datetime.datetime | None] = mapped_column(UTCDateTime)
    run_until: Mapped[datetime.datetime | None] = mapped_column(UTCDateTime)
    locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    execute_immediately: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    last_execution_at: Mapped[datetime.datetime | None] = mapped_column(UTCDateTime)
    last_return_code: Mapped[int | None] = mapped_column(Integer)
    log_file: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )

    def __repr__(self) -> str:
        return f"JobTable(id={self.id!r}, name={self.name!r}, locked={self.locked!r})"
