"""
Shared pytest fixtures for command-scheduler tests.

This module provides:
- An in-memory job store (engine, session, repository)
- An isolated command registry with a few well-behaved and misbehaving commands
- A job factory and a writable log directory
- A coordinator and a run loop service that records its status lines

Usage:
    def test_something(repository, make_job):
        job = make_job("nightly", cron_expression="0 2 * * *")
        ...
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from command_scheduler.core.orm import create_scheduler_engine, init_schema, scheduler_session_factory
from command_scheduler.core.orm.session import SchedulerSession
from command_scheduler.execution.dispatcher import Dispatcher
from command_scheduler.execution.resolvers import CommandRegistry, Invocation
from command_scheduler.scheduling.coordinator import ExecutionCoordinator
from command_scheduler.scheduling.models import ExecutionMode, Job, JobCreate
from command_scheduler.scheduling.repository import JobRepository
from command_scheduler.scheduling.service import SchedulerService

#: Fixed evaluation instant used across scheduling tests.
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Job store
# =============================================================================


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with the scheduler schema."""
    engine = create_scheduler_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[SchedulerSession, None, None]:
    session = scheduler_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def repository(session) -> JobRepository:
    return JobRepository(session)


@pytest.fixture
def make_job(repository):
    """Factory creating jobs with sensible defaults.

    ``locked=True`` takes the lock through the repository, the way another
    process would.
    """

    def _make(
        name: str = "job",
        command: str = "app:echo",
        *,
        locked: bool = False,
        **fields,
    ) -> Job:
        fields.setdefault("cron_expression", "0 * * * *")
        job = repository.create(JobCreate(name=name, command=command, **fields))
        if locked:
            repository.acquire_lock(job.id, NOW)
            job = repository.get(job.id)
        return job

    return _make


@pytest.fixture
def on_demand_job(make_job) -> Job:
    """The canonical immediate-run job: ON_DEMAND, execute_immediately."""
    return make_job(
        "adhoc",
        command="app:echo",
        arguments="hello world",
        cron_expression=None,
        mode=ExecutionMode.ON_DEMAND,
        execute_immediately=True,
    )


# =============================================================================
# Commands
# =============================================================================


@pytest.fixture
def calls() -> list[Invocation]:
    """Every invocation the test registry received, in order."""
    return []


@pytest.fixture
def registry(calls) -> CommandRegistry:
    """Isolated registry with well-behaved and misbehaving commands."""
    registry = CommandRegistry()

    @registry.command("app:echo", description="Echo the arguments")
    def echo(invocation: Invocation):
        calls.append(invocation)
        invocation.output.writeln(" ".join(invocation.argv))
        return 0

    @registry.command("app:fail")
    def fail(invocation: Invocation):
        calls.append(invocation)
        raise RuntimeError("database exploded")

    @registry.command("app:exit-two")
    def exit_two(invocation: Invocation):
        calls.append(invocation)
        return 2

    @registry.command("app:interrupt")
    def interrupt(invocation: Invocation):
        calls.append(invocation)
        raise KeyboardInterrupt

    return registry


@pytest.fixture
def log_dir(tmp_path) -> Path:
    path = tmp_path / "logs"
    path.mkdir()
    return path


# =============================================================================
# Coordinator and run loop
# =============================================================================


@pytest.fixture
def coordinator(repository, registry, log_dir) -> ExecutionCoordinator:
    return ExecutionCoordinator(
        repository,
        Dispatcher(registry),
        log_path=str(log_dir),
        env_overrides={"SCHEDULER_APP_ENV": "test"},
    )


@pytest.fixture
def lines() -> list[str]:
    """Status lines echoed by the run loop."""
    return []


@pytest.fixture
def service(repository, coordinator, log_dir, lines) -> SchedulerService:
    return SchedulerService(repository, coordinator, log_path=str(log_dir), echo=lines.append)
