"""Scheduler models.

Manifesto:
    The run loop, the coordinator and the job manager all work with
    plain dataclasses.  ORM rows never leave the repository, so a
    ``Job`` handle is always a detached snapshot and nobody can mutate
    store state by accident.

Tags:
    models, scheduling, dataclasses, cron

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

#: Return code recorded when the target cannot be found or raised a fault.
FAILURE_RETURN_CODE = -1


class ExecutionMode(str, Enum):
    """How a job becomes due."""

    AUTO = "auto"            # Driven by the cron expression
    ON_DEMAND = "on_demand"  # Only runs when explicitly requested


# ---------------------------------------------------------------------------
# scheduled_jobs
# ---------------------------------------------------------------------------


@dataclass
class Job:
    """Detached snapshot of a ``scheduled_jobs`` row."""

    id: int
    name: str
    command: str
    arguments: str = ""
    cron_expression: str | None = None
    mode: ExecutionMode = ExecutionMode.AUTO
    delay_until: datetime | None = None
    run_until: datetime | None = None
    locked: bool = False
    disabled: bool = False
    execute_immediately: bool = False
    last_execution_at: datetime | None = None
    last_return_code: int | None = None
    log_file: str | None = None
    priority: int = 0
    created_at: datetime | None = None

    @property
    def is_auto(self) -> bool:
        return self.mode is ExecutionMode.AUTO

    @property
    def is_on_demand(self) -> bool:
        return self.mode is ExecutionMode.ON_DEMAND

    @property
    def command_line(self) -> str:
        """Command and arguments as shown in status lines."""
        return f"{self.command} {self.arguments}".strip()


@dataclass
class JobCreate:
    """DTO for creating a new job."""

    name: str
    command: str
    arguments: str = ""
    cron_expression: str | None = None
    mode: ExecutionMode = ExecutionMode.AUTO
    delay_until: datetime | None = None
    run_until: datetime | None = None
    disabled: bool = False
    execute_immediately: bool = False
    last_execution_at: datetime | None = None
    log_file: str | None = None
    priority: int = 0


# ---------------------------------------------------------------------------
# Execution outcomes
# ---------------------------------------------------------------------------


class OutcomeStatus(str, Enum):
    """Result of one coordinator attempt."""

    COMPLETED = "COMPLETED"                  # Dispatched, exit code 0
    FAILED = "FAILED"                        # Dispatched, nonzero exit code or fault
    NOT_FOUND = "NOT_FOUND"                  # Resolver had no target
    LOCK_CONFLICT = "LOCK_CONFLICT"          # Owned by another process
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"  # Store failed during acquire/release


@dataclass
class Outcome:
    """What happened when the coordinator attempted a job."""

    job_id: int
    job_name: str
    status: OutcomeStatus
    return_code: int | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def dispatched(self) -> bool:
        return self.status in (
            OutcomeStatus.COMPLETED,
            OutcomeStatus.FAILED,
            OutcomeStatus.NOT_FOUND,
        )


__all__ = [
    "FAILURE_RETURN_CODE",
    "ExecutionMode",
    "Job",
    "JobCreate",
    "Outcome",
    "OutcomeStatus",
]
