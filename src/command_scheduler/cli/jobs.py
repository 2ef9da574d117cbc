"""
CLI: ``command-scheduler jobs``: inspect and steer scheduled jobs.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import typer

from command_scheduler.cli.utils import console, fail, make_context, output_item, output_items
from command_scheduler.core.errors import SchedulerError
from command_scheduler.scheduling.manager import JobManager
from command_scheduler.scheduling.models import ExecutionMode, Job, JobCreate

app = typer.Typer(no_args_is_help=True)

_LIST_COLUMNS = [
    "id",
    "name",
    "command",
    "arguments",
    "cron_expression",
    "mode",
    "priority",
    "disabled",
    "locked",
    "last_execution_at",
    "last_return_code",
]


def _with_manager(database: str | None, action: Callable[[JobManager], Job]) -> Job:
    ctx = make_context(database)
    try:
        return action(JobManager(ctx.repository))
    except SchedulerError as e:
        fail(e)
    finally:
        ctx.close()


@app.command("list")
def list_jobs(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List all scheduled jobs."""
    ctx = make_context(database)
    try:
        jobs = ctx.repository.list_all()
    finally:
        ctx.close()
    output_items(jobs, as_json=json_out, title="Scheduled jobs", columns=_LIST_COLUMNS)


@app.command("show")
def show_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show job details."""
    job = _with_manager(database, lambda m: m.get(name))
    output_item(job, as_json=json_out, title=f"Job: {name}")


@app.command("create")
def create_job(
    name: str = typer.Argument(..., help="Unique job name"),
    command: str = typer.Argument(..., help="Command to dispatch"),
    arguments: str = typer.Option("", "--args", help="Argument string"),
    cron: str | None = typer.Option(None, "--cron", help="Cron expression"),
    on_demand: bool = typer.Option(False, "--on-demand", help="Only run when requested"),
    priority: int = typer.Option(0, "--priority", help="Lower runs first"),
    log_file: str | None = typer.Option(None, "--log-file", help="Output file name"),
    disabled: bool = typer.Option(False, "--disabled", help="Create disabled"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Create a new scheduled job."""
    ctx = make_context(database)
    try:
        job = ctx.repository.create(
            JobCreate(
                name=name,
                command=command,
                arguments=arguments,
                cron_expression=cron,
                mode=ExecutionMode.ON_DEMAND if on_demand else ExecutionMode.AUTO,
                priority=priority,
                log_file=log_file,
                disabled=disabled,
            )
        )
    except SchedulerError as e:
        fail(e)
    finally:
        ctx.close()
    console.print(f"[green]Created[/green] job {job.name} (id {job.id})")


def _done(job: Job, what: str) -> None:
    console.print(f"[green]{job.name}[/green]: {what}")


@app.command("run")
def run_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Run the job on the next cycle, regardless of its schedule."""
    _done(_with_manager(database, lambda m: m.run(name)), "execution requested")


@app.command("stop")
def stop_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Withdraw a pending run request."""
    _done(_with_manager(database, lambda m: m.stop(name)), "run request withdrawn")


@app.command("enable")
def enable_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Enable a job."""
    _done(_with_manager(database, lambda m: m.enable(name)), "enabled")


@app.command("disable")
def disable_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Disable a job."""
    _done(_with_manager(database, lambda m: m.disable(name)), "disabled")


@app.command("on-demand")
def on_demand_job(
    name: str = typer.Argument(..., help="Job name"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Switch a job to on-demand mode."""
    _done(_with_manager(database, lambda m: m.set_on_demand(name)), "on demand")


@app.command("auto")
def auto_job(
    name: str = typer.Argument(..., help="Job name"),
    cron: str | None = typer.Option(None, "--cron", help="New cron expression"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Switch a job to automatic (cron-driven) mode."""
    job = _with_manager(database, lambda m: m.set_auto(name, cron))
    _done(job, f"auto ({job.cron_expression})")


@app.command("run-after")
def run_after_job(
    name: str = typer.Argument(..., help="Job name"),
    when: datetime = typer.Argument(..., help="Earliest run instant (UTC)"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Delay a job's schedule until WHEN."""
    job = _with_manager(database, lambda m: m.run_after(name, when))
    _done(job, f"delayed until {job.delay_until.isoformat()}")


@app.command("run-until")
def run_until_job(
    name: str = typer.Argument(..., help="Job name"),
    when: datetime = typer.Argument(..., help="End of the run window (UTC)"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Stop scheduling a job after WHEN."""
    job = _with_manager(database, lambda m: m.run_until(name, when))
    _done(job, f"runs until {job.run_until.isoformat()}")
