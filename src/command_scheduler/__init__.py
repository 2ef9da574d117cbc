"""command-scheduler: periodic batch job scheduler over a shared job store.

Manifesto:
    Jobs live in a database table.  Every invocation of the scheduler (usually
    from cron, once a minute) reads the enabled jobs, runs the ones that are
    due, and records what happened.  Any number of hosts may invoke the
    scheduler against the same store: the store's conditional update makes
    sure each job runs at most once at a time.

Architecture::

    core/
        errors.py       Typed error hierarchy (SchedulerError, ConfigError, ...)
        logging.py      structlog configuration
        settings.py     SCHEDULER_* environment settings (pydantic-settings)
        timestamps.py   UTC helpers
        cache.py        TTL cache for command lookups
        orm/            SQLAlchemy 2.0 tables, engine and session factories

    scheduling/
        models.py       Job, JobCreate, Outcome
        recurrence.py   croniter-backed next-run evaluation
        decision.py     decide(job, now) -> Decision
        repository.py   JobRepository, lock acquire/release
        coordinator.py  ExecutionCoordinator (lease, dispatch, record)
        service.py      SchedulerService.run_cycle()
        manager.py      JobManager (run / stop / enable / ... by name)

    execution/
        resolvers.py    CommandRegistry, ExecutableResolver, ChainResolver
        dispatcher.py   Dispatcher with fault boundary
        sinks.py        NullSink / FileSink output capture

    cli/                typer application (``command-scheduler``)

Tags:
    scheduler, cron, batch-jobs, locking
"""

from command_scheduler.core.errors import (
    ConfigError,
    JobNotFoundError,
    SchedulerError,
    StoreUnavailableError,
)
from command_scheduler.execution.dispatcher import Dispatcher
from command_scheduler.execution.resolvers import CommandRegistry, Invocation
from command_scheduler.scheduling.coordinator import ExecutionCoordinator
from command_scheduler.scheduling.manager import JobManager
from command_scheduler.scheduling.models import ExecutionMode, Job, JobCreate, Outcome, OutcomeStatus
from command_scheduler.scheduling.repository import JobRepository
from command_scheduler.scheduling.service import CycleSummary, SchedulerService

__version__ = "0.1.0"

__all__ = [
    "CommandRegistry",
    "ConfigError",
    "CycleSummary",
    "Dispatcher",
    "ExecutionCoordinator",
    "ExecutionMode",
    "Invocation",
    "Job",
    "JobCreate",
    "JobManager",
    "JobNotFoundError",
    "JobRepository",
    "Outcome",
    "OutcomeStatus",
    "SchedulerError",
    "SchedulerService",
    "StoreUnavailableError",
]
