"""Run loop: one scheduling cycle over every enabled job.

Manifesto:
    The scheduler is invoked from cron (typically every minute).  Each
    invocation runs exactly one cycle: read the enabled jobs, decide for
    each, execute the due ones, fall back expired ones to ON_DEMAND.
    A broken job must never stop the cycle for the jobs behind it.

Cycle::

    check_log_path()                  ─ ConfigError aborts the cycle
          │
    list_enabled()                    ─ priority ASC, id ASC
          │
    for each job:
        get(id)                       ─ fresh snapshot
        decide(job, now)
          ├── RUN_IMMEDIATE / RUN_DUE ─ status line, coordinator (unless dry-run)
          ├── TRANSITION_TO_ON_DEMAND ─ repository.transition_to_on_demand (always)
          └── SKIP
          │
    "Nothing to do." when no job was actionable

Dry-run suppresses dispatch only.  Window-expiry transitions are still
persisted.

Tags:
    scheduling, run-loop, cycle, dry-run

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from command_scheduler.core.errors import SchedulerError, is_retryable
from command_scheduler.core.logging import get_logger
from command_scheduler.core.timestamps import format_status_time, utc_now
from command_scheduler.execution.sinks import check_log_path
from command_scheduler.scheduling.coordinator import ExecutionCoordinator
from command_scheduler.scheduling.decision import Action, decide
from command_scheduler.scheduling.models import Job, Outcome, OutcomeStatus
from command_scheduler.scheduling.recurrence import NextRunEvaluator, next_after
from command_scheduler.scheduling.repository import JobRepository

logger = get_logger(__name__)

NOTHING_TO_DO = "Nothing to do."

_FAILED_STATUSES = (
    OutcomeStatus.FAILED,
    OutcomeStatus.NOT_FOUND,
    OutcomeStatus.STORE_UNAVAILABLE,
)


def _discard(message: str) -> None:
    pass


@dataclass
class JobReport:
    """What the cycle did with one job."""

    job_name: str
    action: Action
    outcome: Outcome | None = None
    error: str | None = None


@dataclass
class CycleSummary:
    """Result of one ``run_cycle``."""

    reports: list[JobReport] = field(default_factory=list)
    dry_run: bool = False

    @property
    def actionable(self) -> bool:
        """True when at least one job was due or immediately requested."""
        return any(report.action.runs for report in self.reports)

    @property
    def nothing_to_do(self) -> bool:
        return not self.actionable

    @property
    def failed(self) -> list[JobReport]:
        """Reports with an error or an unsuccessful dispatch (lock conflicts excluded)."""
        return [
            r
            for r in self.reports
            if (r.outcome is None and r.error is not None)
            or (r.outcome is not None and r.outcome.status in _FAILED_STATUSES)
        ]

    def report_for(self, job_name: str) -> JobReport | None:
        for report in self.reports:
            if report.job_name == job_name:
                return report
        return None


class SchedulerService:
    """Runs scheduling cycles.

    Example:
        >>> service = SchedulerService(repo, coordinator, log_path="disabled", echo=print)
        >>> summary = service.run_cycle()
        Start : Execute all scheduled command
        Nothing to do.
    """

    def __init__(
        self,
        repository: JobRepository,
        coordinator: ExecutionCoordinator,
        log_path: str | None = None,
        echo: Callable[[str], None] | None = None,
        next_run_after: NextRunEvaluator = next_after,
    ) -> None:
        self.repository = repository
        self.coordinator = coordinator
        self.log_path = log_path
        self.echo = echo or _discard
        self.next_run_after = next_run_after

    def run_cycle(self, now: datetime | None = None, dry_run: bool = False) -> CycleSummary:
        """Run one cycle.

        Args:
            now: Evaluation instant (default: now)
            dry_run: Report the jobs that would run without running them

        Returns:
            CycleSummary with one report per actionable or failing job

        Raises:
            ConfigError: Log directory configured but unusable
            StoreUnavailableError: The enabled jobs could not be listed
        """
        check_log_path(self.log_path)

        now = now or utc_now()
        summary = CycleSummary(dry_run=dry_run)
        self.echo(
            "Start : " + ("Dump" if dry_run else "Execute") + " all scheduled command"
        )
        logger.info("cycle.started", dry_run=dry_run)

        for listed in self.repository.list_enabled():
            report = self._process(listed, now, dry_run)
            if report is not None:
                summary.reports.append(report)

        if summary.nothing_to_do:
            self.echo(NOTHING_TO_DO)

        logger.info(
            "cycle.finished",
            dry_run=dry_run,
            actionable=summary.actionable,
            reports=len(summary.reports),
            failed=len(summary.failed),
        )
        return summary

    def _process(self, listed: Job, now: datetime, dry_run: bool) -> JobReport | None:
        action = Action.SKIP
        try:
            job = self.repository.get(listed.id)
            if job is None:
                return None

            decision = decide(job, now, self.next_run_after)
            action = decision.action

            if action is Action.TRANSITION_TO_ON_DEMAND:
                self.repository.transition_to_on_demand(job.id)
                return JobReport(job_name=job.name, action=action)

            if not action.runs:
                return None

            if action is Action.RUN_IMMEDIATE:
                self.echo(f"Immediately execution asked for : {job.command}")
            else:
                self.echo(
                    f"Command {job.command} should be executed - last execution : "
                    f"{format_status_time(job.last_execution_at)}."
                )

            if dry_run:
                return JobReport(job_name=job.name, action=action)

            outcome = self.coordinator.try_execute(job, now=now, on_dispatch=self._announce)
            self._report_outcome(job, outcome)
            return JobReport(job_name=job.name, action=action, outcome=outcome, error=outcome.error)

        except (SchedulerError, SQLAlchemyError, OSError) as e:
            message = e.message if isinstance(e, SchedulerError) else str(e)
            logger.error(
                "job.cycle_error",
                job=listed.name,
                error_type=type(e).__name__,
                error=message,
                retryable=is_retryable(e),
            )
            return JobReport(job_name=listed.name, action=action, error=message)

    def _announce(self, job: Job) -> None:
        self.echo(f"Execute : {job.command_line}")

    def _report_outcome(self, job: Job, outcome: Outcome) -> None:
        if outcome.status is OutcomeStatus.LOCK_CONFLICT:
            self.echo(f"Command {job.command} is locked")
        elif outcome.status is OutcomeStatus.NOT_FOUND:
            self.echo(f"Cannot find {job.command}")


__all__ = ["CycleSummary", "JobReport", "NOTHING_TO_DO", "SchedulerService"]
