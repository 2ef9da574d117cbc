"""Scheduling decision engine.

``decide(job, now)`` maps a job snapshot and the current instant to one
of four actions.  It never touches the store: the window-expiry
transition is *reported* and the run loop applies it.

Evaluation order::

    disabled / locked ───────────────► SKIP
    execute_immediately ─────────────► RUN_IMMEDIATE
    AUTO, next_run < now, in window ─► RUN_DUE
    run_until < now ─────────────────► TRANSITION_TO_ON_DEMAND
    otherwise ───────────────────────► SKIP

The immediate override ignores recurrence, ``delay_until`` and
``run_until``.  Window expiry is evaluated even when nothing runs, so an
expired AUTO job always falls back to ON_DEMAND.

Tags:
    scheduling, decision, cron, pure-function
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from command_scheduler.core.timestamps import ensure_utc
from command_scheduler.scheduling.models import ExecutionMode, Job
from command_scheduler.scheduling.recurrence import NextRunEvaluator, next_after


class Action(str, Enum):
    RUN_IMMEDIATE = "run-immediate"
    RUN_DUE = "run-due"
    TRANSITION_TO_ON_DEMAND = "transition-to-on-demand"
    SKIP = "skip"

    @property
    def runs(self) -> bool:
        return self in (Action.RUN_IMMEDIATE, Action.RUN_DUE)


@dataclass(frozen=True)
class Decision:
    """Action chosen for a job, plus the next run the cron rule produced."""

    action: Action
    next_run: datetime | None = None
    reason: str = ""


def decide(
    job: Job,
    now: datetime,
    next_run_after: NextRunEvaluator = next_after,
) -> Decision:
    """Decide what the run loop should do with ``job`` at ``now``.

    Args:
        job: Job snapshot, freshly read from the store
        now: Current instant (aware UTC)
        next_run_after: Recurrence evaluator, injectable for tests

    Returns:
        Decision with the action and the computed next run (AUTO jobs only)
    """
    if job.disabled:
        return Decision(Action.SKIP, reason="disabled")
    if job.locked:
        return Decision(Action.SKIP, reason="locked")

    now = ensure_utc(now)
    next_run: datetime | None = None
    if job.mode is ExecutionMode.AUTO and job.cron_expression:
        if job.last_execution_at is not None:
            next_run = next_run_after(job.cron_expression, job.last_execution_at)

    if job.execute_immediately:
        return Decision(Action.RUN_IMMEDIATE, next_run, reason="execute immediately")

    delay_until = ensure_utc(job.delay_until)
    run_until = ensure_utc(job.run_until)

    if (
        job.mode is ExecutionMode.AUTO
        and job.cron_expression
        and (next_run is None or next_run < now)
        and (delay_until is None or now >= delay_until)
        and (run_until is None or now <= run_until)
    ):
        # next_run is None only for a job that has never run
        return Decision(Action.RUN_DUE, next_run, reason="due")

    if run_until is not None and now > run_until:
        return Decision(Action.TRANSITION_TO_ON_DEMAND, next_run, reason="run window expired")

    return Decision(Action.SKIP, next_run, reason="not due")


__all__ = ["Action", "Decision", "decide"]
