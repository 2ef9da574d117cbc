"""
CLI utility helpers: output formatting and store access.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.engine import Engine

from command_scheduler.core.errors import SchedulerError
from command_scheduler.core.orm import create_scheduler_engine, scheduler_session_factory
from command_scheduler.core.orm.session import SchedulerSession
from command_scheduler.core.settings import SchedulerSettings, get_settings
from command_scheduler.scheduling.repository import JobRepository

console = Console()
err_console = Console(stderr=True)


# ── Store helper ─────────────────────────────────────────────────────────


@dataclass
class CliContext:
    """Everything a CLI command needs to talk to the job store."""

    settings: SchedulerSettings
    engine: Engine
    session: SchedulerSession
    repository: JobRepository

    def close(self) -> None:
        self.session.close()
        self.engine.dispose()


def make_context(database: str | None = None) -> CliContext:
    """Open the job store.  Defaults to ``SCHEDULER_DATABASE_URL``."""
    settings = get_settings()
    engine = create_scheduler_engine(database or settings.database_url)
    session = scheduler_session_factory(engine)()
    return CliContext(
        settings=settings,
        engine=engine,
        session=session,
        repository=JobRepository(session),
    )


def fail(error: SchedulerError) -> None:
    """Print a scheduler error and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {error.message}"
    )
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a dataclass or dict to a plain dict."""
    if hasattr(obj, "__dataclass_fields__"):
        return {k: _plain(v) for k, v in asdict(obj).items()}
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_items(
    items: list[Any],
    *,
    as_json: bool = False,
    title: str = "",
    columns: list[str] | None = None,
) -> None:
    """Render a list of dataclasses as a Rich table (or JSON)."""
    rows = [_to_dict(item) for item in items]

    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print("[dim]No items.[/dim]")
        return

    columns = columns or list(rows[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
    console.print(table)


def output_item(item: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a single dataclass as key-value pairs (or JSON)."""
    data = _to_dict(item)

    if as_json:
        console.print_json(json.dumps(data, default=str))
        return

    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
