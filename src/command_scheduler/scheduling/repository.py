"""Job repository: the durable job store.

Manifesto:
    The coordinator's at-most-one guarantee rests entirely on the store.
    Lock acquisition is a single conditional ``UPDATE … WHERE locked =
    false``: whichever transaction reaches the row first flips the flag,
    every racer after it matches zero rows.  Row-level locking databases
    serialise the racers on the row; SQLite serialises them on its write
    lock.  No in-process mutex is involved.

This module provides CRUD over ``scheduled_jobs`` plus the three
state-changing primitives the scheduling core needs:

* ``acquire_lock(job_id, now)``: conditional lock + ``last_execution_at`` stamp
* ``release_lock(job_id, return_code)``: unlock, clear the immediate flag,
  record the return code
* ``transition_to_on_demand(job_id)``: window expiry

Every read ends its transaction and every write commits, so a ``Job``
returned by this repository is a detached snapshot, never a live handle.

Tags:
    repository, CRUD, sqlalchemy, locking, scheduling

Doc-Types:
    api-reference
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from command_scheduler.core.errors import SchedulerError, StoreUnavailableError
from command_scheduler.core.logging import get_logger
from command_scheduler.core.orm.tables import JobTable
from command_scheduler.core.timestamps import ensure_utc, utc_now
from command_scheduler.scheduling.models import ExecutionMode, Job, JobCreate
from command_scheduler.scheduling.recurrence import validate_expression

logger = get_logger(__name__)

# Fields ``save`` writes back; lock state and history belong to the coordinator
_EDITABLE_FIELDS = (
    "name",
    "command",
    "arguments",
    "cron_expression",
    "mode",
    "delay_until",
    "run_until",
    "disabled",
    "execute_immediately",
    "log_file",
    "priority",
)


def _to_model(row: JobTable) -> Job:
    return Job(
        id=row.id,
        name=row.name,
        command=row.command,
        arguments=row.arguments or "",
        cron_expression=row.cron_expression,
        mode=ExecutionMode(row.mode),
        delay_until=ensure_utc(row.delay_until),
        run_until=ensure_utc(row.run_until),
        locked=bool(row.locked),
        disabled=bool(row.disabled),
        execute_immediately=bool(row.execute_immediately),
        last_execution_at=ensure_utc(row.last_execution_at),
        last_return_code=row.last_return_code,
        log_file=row.log_file,
        priority=row.priority,
        created_at=ensure_utc(row.created_at),
    )


class JobRepository:
    """Repository for job CRUD and the coordinator's lock primitives.

    Example:
        >>> repo = JobRepository(session)
        >>> job = repo.create(JobCreate(
        ...     name="nightly-report",
        ...     command="report:generate",
        ...     cron_expression="0 2 * * *",
        ... ))
        >>> locked = repo.acquire_lock(job.id, utc_now())
        >>> locked is not None
        True
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # === Session management ===

    def clear_session_cache(self) -> None:
        """Detach every loaded row so the next read hits the database."""
        self.session.expunge_all()

    def _end_read(self) -> None:
        if self.session.in_transaction():
            self.session.commit()

    def _fail(self, action: str, job_id: int | None, error: SQLAlchemyError) -> StoreUnavailableError:
        self.session.rollback()
        logger.error("store.failed", action=action, job_id=job_id, error=str(error))
        return StoreUnavailableError(
            f"Job store failed during {action}",
            context={"job_id": job_id} if job_id is not None else None,
            cause=error,
        )

    # === CRUD Operations ===

    def create(self, data: JobCreate) -> Job:
        """Create a new job.

        The cron expression is validated here, at save time, and is required
        for AUTO jobs only.

        Raises:
            InvalidExpressionError: AUTO job without a parseable expression
            SchedulerError: Name already taken
        """
        cron_expression = data.cron_expression
        if data.mode is ExecutionMode.AUTO or cron_expression:
            cron_expression = validate_expression(cron_expression)

        row = JobTable(
            name=data.name,
            command=data.command,
            arguments=data.arguments or "",
            cron_expression=cron_expression,
            mode=data.mode.value,
            delay_until=data.delay_until,
            run_until=data.run_until,
            locked=False,
            disabled=data.disabled,
            execute_immediately=data.execute_immediately,
            last_execution_at=data.last_execution_at,
            log_file=data.log_file,
            priority=data.priority,
            created_at=utc_now(),
        )
        try:
            self.session.add(row)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise SchedulerError(f"Job name already exists: {data.name}", cause=e) from e
        except SQLAlchemyError as e:
            raise self._fail("create", None, e) from e

        logger.info("job.created", job=data.name, command=data.command, mode=data.mode.value)
        return _to_model(row)

    def get(self, job_id: int) -> Job | None:
        """Get a job by id, always re-read from the database."""
        try:
            row = self.session.get(JobTable, job_id, populate_existing=True)
            job = _to_model(row) if row is not None else None
            self._end_read()
        except SQLAlchemyError as e:
            raise self._fail("get", job_id, e) from e
        return job

    def get_by_name(self, name: str) -> Job | None:
        row = self.session.execute(
            select(JobTable)
            .where(JobTable.name == name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        job = _to_model(row) if row is not None else None
        self._end_read()
        return job

    def find_by_command(self, command: str) -> list[Job]:
        """All jobs targeting ``command``, lowest priority value first."""
        rows = self.session.execute(
            select(JobTable)
            .where(JobTable.command == command)
            .order_by(JobTable.priority.asc(), JobTable.id.asc())
            .execution_options(populate_existing=True)
        ).scalars()
        jobs = [_to_model(row) for row in rows]
        self._end_read()
        return jobs

    def list_all(self) -> list[Job]:
        rows = self.session.execute(
            select(JobTable)
            .order_by(JobTable.priority.asc(), JobTable.id.asc())
            .execution_options(populate_existing=True)
        ).scalars()
        jobs = [_to_model(row) for row in rows]
        self._end_read()
        return jobs

    def list_enabled(self) -> list[Job]:
        """Enabled jobs in store iteration order (priority, then id)."""
        try:
            rows = self.session.execute(
                select(JobTable)
                .where(JobTable.disabled.is_(False))
                .order_by(JobTable.priority.asc(), JobTable.id.asc())
                .execution_options(populate_existing=True)
            ).scalars()
            jobs = [_to_model(row) for row in rows]
            self._end_read()
        except SQLAlchemyError as e:
            raise self._fail("list_enabled", None, e) from e
        return jobs

    def count_enabled(self) -> int:
        return len(self.list_enabled())

    def save(self, job: Job) -> Job:
        """Persist the editable fields of ``job``.

        Lock state, ``last_execution_at`` and ``last_return_code`` are not
        written; only the coordinator changes them.
        """
        try:
            row = self.session.get(JobTable, job.id, populate_existing=True)
            if row is None:
                self._end_read()
                raise SchedulerError(f"Job not found: {job.id}")
            for name in _EDITABLE_FIELDS:
                value = getattr(job, name)
                if isinstance(value, ExecutionMode):
                    value = value.value
                setattr(row, name, value)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("save", job.id, e) from e

        logger.debug("job.saved", job=job.name, job_id=job.id)
        return _to_model(row)

    # === Lock primitives ===

    def acquire_lock(self, job_id: int, now: datetime | None = None) -> Job | None:
        """Take ownership of a job.

        Flips ``locked`` from false to true and stamps ``last_execution_at``
        in one conditional update, reads the row back under ``FOR UPDATE``
        and commits.

        Args:
            job_id: Job to lock
            now: Acquisition instant (default: now)

        Returns:
            The freshly re-read job, or None if another process owns it

        Raises:
            StoreUnavailableError: The transaction failed; it was rolled back
        """
        now = now or utc_now()
        self.clear_session_cache()
        try:
            result = self.session.execute(
                update(JobTable)
                .where(JobTable.id == job_id, JobTable.locked.is_(False))
                .values(locked=True, last_execution_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                logger.debug("job.lock_conflict", job_id=job_id)
                return None

            self.session.execute(
                select(JobTable.id).where(JobTable.id == job_id).with_for_update()
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("acquire_lock", job_id, e) from e

        logger.debug("job.lock_acquired", job_id=job_id)
        self.clear_session_cache()
        return self.get(job_id)

    def release_lock(self, job_id: int, return_code: int) -> None:
        """Record the outcome and release ownership.

        Clears ``locked`` and ``execute_immediately`` and stores the return
        code, whatever the dispatch result was.
        """
        try:
            self.session.execute(
                update(JobTable)
                .where(JobTable.id == job_id)
                .values(
                    locked=False,
                    execute_immediately=False,
                    last_return_code=return_code,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("release_lock", job_id, e) from e
        finally:
            self.clear_session_cache()

        logger.debug("job.lock_released", job_id=job_id, return_code=return_code)

    def transition_to_on_demand(self, job_id: int) -> None:
        """Switch an expired AUTO job to ON_DEMAND and clear its window."""
        try:
            self.session.execute(
                update(JobTable)
                .where(JobTable.id == job_id)
                .values(
                    mode=ExecutionMode.ON_DEMAND.value,
                    delay_until=None,
                    run_until=None,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("transition_to_on_demand", job_id, e) from e
        finally:
            self.clear_session_cache()

        logger.info("job.mode_changed", job_id=job_id, mode=ExecutionMode.ON_DEMAND.value)


__all__ = ["JobRepository"]
