"""Job manager: programmatic control of scheduled jobs.

Host code uses this facade to steer jobs between cycles without touching
the store directly::

    manager = JobManager(JobRepository(session))
    manager.run("nightly-report")          # next cycle runs it immediately
    manager.run_after("nightly-report", tomorrow)
    manager.is_failing("nightly-report")   # last_return_code == -1

Every mutation is persisted immediately.  Lock state and execution history
are never written here; only the coordinator changes them.

Tags:
    scheduling, facade, on-demand
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime

from command_scheduler.core.cache import TTLCache
from command_scheduler.core.errors import ErrorCategory, JobNotFoundError, SchedulerError
from command_scheduler.core.logging import get_logger
from command_scheduler.core.timestamps import ensure_utc
from command_scheduler.scheduling.models import FAILURE_RETURN_CODE, ExecutionMode, Job
from command_scheduler.scheduling.recurrence import validate_expression
from command_scheduler.scheduling.repository import JobRepository

logger = get_logger(__name__)

#: How long a command → job id lookup is memoised.
COMMAND_CACHE_TTL_SECONDS = 3600

_COMMAND_NAME = re.compile(r"^[^:]+(:[^:]+)*$")


class JobManager:
    """Facade over the repository for by-name job control.

    Args:
        repository: Job store
        cache: Cache for command → job id lookups
    """

    def __init__(self, repository: JobRepository, cache: TTLCache | None = None) -> None:
        self.repository = repository
        self.cache = cache if cache is not None else TTLCache(ttl_seconds=COMMAND_CACHE_TTL_SECONDS)

    # === Lookup ===

    def get(self, name: str) -> Job:
        """Return the job called ``name``.

        Raises:
            JobNotFoundError: No such job
        """
        job = self.repository.get_by_name(name)
        if job is None:
            raise JobNotFoundError(name)
        return job

    def exists(self, name: str) -> bool:
        return self.repository.get_by_name(name) is not None

    def find_by_command(self, command: str) -> Job | None:
        """The job with the lowest priority value targeting ``command``.

        The job id is memoised per command name.

        Raises:
            SchedulerError: ``command`` is not a valid command name
        """
        if not _COMMAND_NAME.match(command):
            raise SchedulerError(
                f"{command} is not a valid command name",
                category=ErrorCategory.VALIDATION,
            )

        key = "command-id:" + command
        job_id = self.cache.get(key)
        if job_id is not None:
            job = self.repository.get(job_id)
            if job is not None and job.command == command:
                return job
            self.cache.delete(key)

        jobs = self.repository.find_by_command(command)
        if not jobs:
            return None
        self.cache.set(key, jobs[0].id)
        return jobs[0]

    # === Mutations ===

    def _update(self, name: str, **changes) -> Job:
        job = self.repository.save(replace(self.get(name), **changes))
        logger.info("job.updated", job=name, fields=sorted(changes))
        return job

    def run(self, name: str) -> Job:
        """Request an immediate run on the next cycle."""
        return self._update(name, execute_immediately=True, delay_until=None)

    def stop(self, name: str) -> Job:
        """Withdraw a pending immediate run request."""
        return self._update(name, execute_immediately=False)

    def enable(self, name: str) -> Job:
        return self._update(name, disabled=False)

    def disable(self, name: str) -> Job:
        return self._update(name, disabled=True)

    def set_on_demand(self, name: str) -> Job:
        return self._update(
            name, mode=ExecutionMode.ON_DEMAND, run_until=None, delay_until=None
        )

    def set_auto(self, name: str, cron_expression: str | None = None) -> Job:
        """Switch to AUTO, optionally replacing the cron expression.

        Raises:
            InvalidExpressionError: Resulting expression missing or unparseable
        """
        job = self.get(name)
        expression = validate_expression(cron_expression or job.cron_expression)
        return self._update(name, mode=ExecutionMode.AUTO, cron_expression=expression)

    def run_after(self, name: str, when: datetime) -> Job:
        """Delay recurrence until ``when``; forces AUTO mode."""
        return self._update(name, delay_until=ensure_utc(when), mode=ExecutionMode.AUTO)

    def run_until(self, name: str, when: datetime) -> Job:
        return self._update(name, run_until=ensure_utc(when))

    # === Predicates ===

    def is_failing(self, name: str) -> bool:
        return self.get(name).last_return_code == FAILURE_RETURN_CODE

    def is_running(self, name: str) -> bool:
        """Locked or waiting for an immediate run."""
        job = self.get(name)
        return job.locked or job.execute_immediately

    def is_stopped(self, name: str) -> bool:
        return not self.is_running(name)

    def is_disabled(self, name: str) -> bool:
        return self.get(name).disabled

    def is_enabled(self, name: str) -> bool:
        return not self.get(name).disabled

    def is_on_demand(self, name: str) -> bool:
        return self.get(name).is_on_demand

    def is_auto(self, name: str) -> bool:
        return self.get(name).is_auto


__all__ = ["COMMAND_CACHE_TTL_SECONDS", "JobManager"]
