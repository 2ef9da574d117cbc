"""Execution coordinator: lease, dispatch, record.

Manifesto:
    A job must never run twice at once, and a job must never stay locked
    because its target crashed.  The coordinator treats the ``locked``
    flag as a lease: acquired through the store's atomic conditional
    update, released in a ``finally`` on every exit path.

Per-job protocol::

    acquire_lock(id, now) ─── None ──► LOCK_CONFLICT (no dispatch)
          │
          ▼ committed: locked = true, last_execution_at = now
    re-read job by id (fields may have changed since the decision)
          │
          ▼
    sink.open() ─── OSError ──► fault (-1), target not run
          │
          ▼
    dispatcher.run(...) ──► exit code | not found (-1) | fault (-1)
          │
          ▼ finally
    release_lock(id, code): locked = false, execute_immediately = false

The disabled flag is not re-checked after the lock is taken: once the run
loop selected a job, the coordinator goes straight to the lock attempt.

Tags:
    scheduling, locking, lease, coordinator

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from command_scheduler.core.errors import (
    LockConflictError,
    StoreUnavailableError,
    TargetFaultError,
)
from command_scheduler.core.logging import LogContext, get_logger
from command_scheduler.core.timestamps import utc_now
from command_scheduler.execution.dispatcher import DispatchResult, Dispatcher
from command_scheduler.execution.sinks import make_sink
from command_scheduler.scheduling.models import (
    FAILURE_RETURN_CODE,
    Job,
    Outcome,
    OutcomeStatus,
)
from command_scheduler.scheduling.repository import JobRepository

logger = get_logger(__name__)


@dataclass
class _Lease:
    """Holds the return code to record when the lease is released."""

    job: Job
    return_code: int = FAILURE_RETURN_CODE


class ExecutionCoordinator:
    """Drives one job through acquire → dispatch → release.

    Example:
        >>> coordinator = ExecutionCoordinator(repo, Dispatcher(registry), log_path="/var/log/jobs")
        >>> outcome = coordinator.attempt_execute(job)
        >>> outcome.status
        <OutcomeStatus.COMPLETED: 'COMPLETED'>
    """

    def __init__(
        self,
        repository: JobRepository,
        dispatcher: Dispatcher,
        log_path: str | None = None,
        env_overrides: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            repository: Job store
            dispatcher: Runs the resolved target
            log_path: Directory for per-job output, or ``"disabled"`` / None
            env_overrides: Ambient options passed to every target
        """
        self.repository = repository
        self.dispatcher = dispatcher
        self.log_path = log_path
        self.env_overrides = dict(env_overrides or {})

    @contextmanager
    def _lease(self, job_id: int, now: datetime) -> Iterator[_Lease | None]:
        """Scoped ownership of a job.

        Yields None on lock conflict.  Otherwise yields the lease and records
        its ``return_code`` on exit, whether the body returned or raised.
        """
        job = self.repository.acquire_lock(job_id, now)
        if job is None:
            yield None
            return

        lease = _Lease(job=job)
        try:
            yield lease
        finally:
            self.repository.release_lock(job_id, lease.return_code)

    def attempt_execute(
        self,
        job: Job,
        now: datetime | None = None,
        on_dispatch: Callable[[Job], None] | None = None,
    ) -> Outcome:
        """Execute ``job`` if no other process owns it.

        Args:
            job: Job selected by the decision engine
            now: Lock acquisition instant (default: now)
            on_dispatch: Optional callback receiving the re-read job right
                before its target runs (used for status lines)

        Returns:
            Outcome of the attempt

        Raises:
            StoreUnavailableError: Lock acquisition or release failed
        """
        now = now or utc_now()

        with LogContext(job=job.name, job_id=job.id):
            with self._lease(job.id, now) as lease:
                if lease is None:
                    conflict = LockConflictError(f"Command {job.command} is locked")
                    logger.info("job.locked_elsewhere")
                    return Outcome(
                        job_id=job.id,
                        job_name=job.name,
                        status=OutcomeStatus.LOCK_CONFLICT,
                        error=conflict.message,
                    )

                current = lease.job
                if on_dispatch is not None:
                    on_dispatch(current)
                result = self._dispatch(current)
                lease.return_code = result.exit_code

            finished = utc_now()
            status = _status_for(result)
            logger.info(
                "job.finished",
                status=status.value,
                return_code=result.exit_code,
            )
            return Outcome(
                job_id=current.id,
                job_name=current.name,
                status=status,
                return_code=result.exit_code,
                started_at=now,
                finished_at=finished,
                error=result.fault.message if result.fault else None,
            )

    def _dispatch(self, job: Job) -> DispatchResult:
        sink = make_sink(self.log_path, job.log_file)
        try:
            sink.open()
        except OSError as e:
            logger.error("job.sink_unavailable", sink=repr(sink), error=str(e))
            fault = TargetFaultError(
                f"Cannot open output for {job.command}: {e}",
                context={"command": job.command, "log_file": job.log_file},
                cause=e,
            )
            return DispatchResult(exit_code=FAILURE_RETURN_CODE, fault=fault)

        with sink:
            logger.info("job.dispatched", command=job.command, sink=repr(sink))
            return self.dispatcher.run(
                job.command,
                job.arguments,
                env_overrides=self.env_overrides,
                sink=sink,
            )

    def try_execute(
        self,
        job: Job,
        now: datetime | None = None,
        on_dispatch: Callable[[Job], None] | None = None,
    ) -> Outcome:
        """Like ``attempt_execute`` but store failures become an outcome."""
        try:
            return self.attempt_execute(job, now=now, on_dispatch=on_dispatch)
        except StoreUnavailableError as e:
            logger.error("job.store_unavailable", job=job.name, error=e.message)
            return Outcome(
                job_id=job.id,
                job_name=job.name,
                status=OutcomeStatus.STORE_UNAVAILABLE,
                error=e.message,
            )


def _status_for(result: DispatchResult) -> OutcomeStatus:
    if not result.found:
        return OutcomeStatus.NOT_FOUND
    if result.exit_code == 0:
        return OutcomeStatus.COMPLETED
    return OutcomeStatus.FAILED


__all__ = ["ExecutionCoordinator"]
