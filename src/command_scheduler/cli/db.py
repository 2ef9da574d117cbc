"""
CLI: ``command-scheduler db``: database management commands.
"""

from __future__ import annotations

import typer

from command_scheduler.cli.utils import console, make_context
from command_scheduler.core.orm import init_schema

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Initialise database schema (create tables)."""
    ctx = make_context(database)
    try:
        init_schema(ctx.engine)
    finally:
        ctx.close()
    console.print(f"[green]Schema ready[/green] at {ctx.engine.url.render_as_string(hide_password=True)}")


@app.command()
def health(
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Check database connectivity and count jobs."""
    from sqlalchemy.exc import SQLAlchemyError

    from command_scheduler.cli.utils import err_console

    ctx = make_context(database)
    try:
        jobs = ctx.repository.list_all()
    except SQLAlchemyError as e:
        err_console.print(f"[bold red]Unreachable[/bold red]: {e}")
        raise typer.Exit(code=1) from e
    finally:
        ctx.close()
    enabled = sum(1 for job in jobs if not job.disabled)
    locked = sum(1 for job in jobs if job.locked)
    console.print(f"jobs: {len(jobs)}  enabled: {enabled}  locked: {locked}")
