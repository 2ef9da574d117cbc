"""Tests for ExecutionCoordinator: lease, dispatch and bookkeeping."""

from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from command_scheduler.core.errors import StoreUnavailableError
from command_scheduler.scheduling.models import FAILURE_RETURN_CODE, OutcomeStatus

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _assert_released(repository, job_id, return_code):
    job = repository.get(job_id)
    assert job.locked is False
    assert job.execute_immediately is False
    assert job.last_return_code == return_code


class TestSuccess:
    def test_completed(self, coordinator, repository, on_demand_job, calls):
        outcome = coordinator.attempt_execute(on_demand_job, now=NOW)

        assert outcome.status is OutcomeStatus.COMPLETED
        assert outcome.return_code == 0
        assert outcome.started_at == NOW
        assert outcome.dispatched
        assert calls[0].argv == ["hello", "world"]
        _assert_released(repository, on_demand_job.id, 0)
        assert repository.get(on_demand_job.id).last_execution_at == NOW

    def test_env_overrides_reach_target(self, coordinator, on_demand_job, calls):
        coordinator.attempt_execute(on_demand_job, now=NOW)
        assert calls[0].env == {"SCHEDULER_APP_ENV": "test"}

    def test_uses_fresh_job(self, coordinator, repository, on_demand_job, calls):
        """Arguments changed after the decision are the ones dispatched."""
        repository.save(replace(on_demand_job, arguments="changed"))
        coordinator.attempt_execute(on_demand_job, now=NOW)
        assert calls[0].argv == ["changed"]

    def test_output_goes_to_log_file(self, coordinator, make_job, log_dir):
        job = make_job(
            "logged", arguments="to the file", execute_immediately=True, log_file="logged.log"
        )
        coordinator.attempt_execute(job, now=NOW)
        assert (log_dir / "logged.log").read_text() == "to the file\n"

    def test_on_dispatch_receives_locked_job(self, coordinator, on_demand_job):
        seen = []
        coordinator.attempt_execute(on_demand_job, now=NOW, on_dispatch=seen.append)
        assert seen[0].locked is True
        assert seen[0].id == on_demand_job.id


class TestFailurePaths:
    def test_not_found(self, coordinator, repository, make_job, calls):
        job = make_job("ghost", command="does-not-exist", execute_immediately=True)

        outcome = coordinator.attempt_execute(job, now=NOW)

        assert outcome.status is OutcomeStatus.NOT_FOUND
        assert outcome.return_code == FAILURE_RETURN_CODE
        assert calls == []
        _assert_released(repository, job.id, FAILURE_RETURN_CODE)

    def test_fault(self, coordinator, repository, make_job, log_dir):
        job = make_job(
            "broken", command="app:fail", execute_immediately=True, log_file="broken.log"
        )

        outcome = coordinator.attempt_execute(job, now=NOW)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.return_code == FAILURE_RETURN_CODE
        assert "database exploded" in outcome.error
        _assert_released(repository, job.id, FAILURE_RETURN_CODE)
        text = (log_dir / "broken.log").read_text()
        assert "database exploded" in text
        assert "Traceback" in text

    def test_unopenable_log_file(self, coordinator, repository, make_job, calls):
        job = make_job(
            "bad", command="app:echo", execute_immediately=True, log_file="missing-subdir/out.log"
        )

        outcome = coordinator.attempt_execute(job, now=NOW)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.return_code == FAILURE_RETURN_CODE
        assert "Cannot open output for app:echo" in outcome.error
        assert calls == []
        _assert_released(repository, job.id, FAILURE_RETURN_CODE)

    def test_nonzero_exit(self, coordinator, repository, make_job):
        job = make_job("two", command="app:exit-two", execute_immediately=True)

        outcome = coordinator.attempt_execute(job, now=NOW)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.return_code == 2
        _assert_released(repository, job.id, 2)

    def test_interrupt_still_releases(self, coordinator, repository, make_job):
        """Signals escape the fault boundary but never leave the job locked."""
        job = make_job("interrupted", command="app:interrupt", execute_immediately=True)

        with pytest.raises(KeyboardInterrupt):
            coordinator.attempt_execute(job, now=NOW)

        _assert_released(repository, job.id, FAILURE_RETURN_CODE)


class TestLockConflict:
    def test_locked_elsewhere(self, coordinator, repository, make_job, calls):
        job = make_job("busy", execute_immediately=True)
        repository.acquire_lock(job.id, NOW)

        outcome = coordinator.attempt_execute(job, now=NOW)

        assert outcome.status is OutcomeStatus.LOCK_CONFLICT
        assert not outcome.dispatched
        assert calls == []
        fetched = repository.get(job.id)
        assert fetched.locked is True
        assert fetched.execute_immediately is True
        assert fetched.last_return_code is None

    def test_store_unavailable(self, coordinator, on_demand_job, calls):
        with patch.object(
            coordinator.repository,
            "acquire_lock",
            side_effect=StoreUnavailableError("Job store failed during acquire_lock"),
        ):
            outcome = coordinator.try_execute(on_demand_job, now=NOW)

        assert outcome.status is OutcomeStatus.STORE_UNAVAILABLE
        assert outcome.error == "Job store failed during acquire_lock"
        assert calls == []

    def test_store_unavailable_propagates_from_attempt(self, coordinator, on_demand_job):
        with patch.object(
            coordinator.repository,
            "acquire_lock",
            side_effect=StoreUnavailableError("down"),
        ):
            with pytest.raises(StoreUnavailableError):
                coordinator.attempt_execute(on_demand_job, now=NOW)
