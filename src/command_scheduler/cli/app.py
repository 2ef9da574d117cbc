"""
Root Typer application for the command-scheduler CLI.

``command-scheduler execute`` is meant to be called from cron once a
minute; the other sub-commands manage the job store.
"""

from __future__ import annotations

import typer
from typer import Typer

from command_scheduler.cli.utils import console, fail, make_context
from command_scheduler.core.errors import SchedulerError
from command_scheduler.core.logging import configure_logging
from command_scheduler.core.settings import get_settings

app = Typer(
    name="command-scheduler",
    help="command-scheduler: run periodic batch jobs from a shared job store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("command-scheduler")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"command-scheduler {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """command-scheduler CLI: execute due jobs and manage the job store."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


# ── Run loop ─────────────────────────────────────────────────────────────


@app.command()
def execute(
    dump: bool = typer.Option(
        False, "--dump", "--dry-run", help="Show the jobs that would run without running them."
    ),
    no_output: bool = typer.Option(
        False, "--no-output", "--quiet", "-q", help="Suppress the status lines."
    ),
    env: str | None = typer.Option(
        None, "--env", "-e", help="Environment forwarded to every job (default: SCHEDULER_APP_ENV)."
    ),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Execute every due job once."""
    from command_scheduler.execution.dispatcher import Dispatcher
    from command_scheduler.execution.resolvers import build_resolver
    from command_scheduler.scheduling.coordinator import ExecutionCoordinator
    from command_scheduler.scheduling.service import SchedulerService

    settings = get_settings()
    ctx = make_context(database)
    try:
        coordinator = ExecutionCoordinator(
            ctx.repository,
            Dispatcher(build_resolver(settings.commands_module)),
            log_path=settings.log_path,
            env_overrides={"SCHEDULER_APP_ENV": env or settings.app_env},
        )
        service = SchedulerService(
            ctx.repository,
            coordinator,
            log_path=settings.log_path,
            echo=None if no_output else typer.echo,
        )
        service.run_cycle(dry_run=dump)
    except SchedulerError as e:
        # Per-job failures never reach here; only cycle-level ones do
        fail(e)
    finally:
        ctx.close()


# ── Command listing ──────────────────────────────────────────────────────


@app.command("commands")
def list_commands(
    exclude: list[str] = typer.Option(
        [], "--exclude", "-x", help="Namespace to hide (repeatable)."
    ),
) -> None:
    """List the commands registered by SCHEDULER_COMMANDS_MODULE, by namespace."""
    from command_scheduler.execution.resolvers import load_registry

    settings = get_settings()
    if not settings.commands_module:
        console.print("[dim]No commands module configured (SCHEDULER_COMMANDS_MODULE).[/dim]")
        return

    try:
        registry = load_registry(settings.commands_module)
    except SchedulerError as e:
        fail(e)

    grouped = registry.list_commands([*settings.excluded_namespaces, *exclude])
    if not grouped:
        console.print("[dim]No commands.[/dim]")
        return
    for namespace, names in grouped.items():
        console.print(f"[bold]{namespace}[/bold]")
        for name in names:
            description = registry.describe(name)
            line = f"  [cyan]{name}[/cyan]"
            if description:
                line += f"  {description.strip().splitlines()[0]}"
            console.print(line)


# ── Sub-command registration ─────────────────────────────────────────────

from command_scheduler.cli.db import app as db_app  # noqa: E402
from command_scheduler.cli.jobs import app as jobs_app  # noqa: E402

app.add_typer(jobs_app, name="jobs", help="Scheduled job management.")
app.add_typer(db_app, name="db", help="Database operations.")
