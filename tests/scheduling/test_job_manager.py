"""Tests for the JobManager facade."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from command_scheduler.core.cache import TTLCache
from command_scheduler.core.errors import InvalidExpressionError, JobNotFoundError, SchedulerError
from command_scheduler.scheduling.manager import JobManager
from command_scheduler.scheduling.models import FAILURE_RETURN_CODE, ExecutionMode

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def manager(repository):
    return JobManager(repository)


class TestLookup:
    def test_get(self, manager, make_job):
        make_job("nightly")
        assert manager.get("nightly").name == "nightly"

    def test_get_missing(self, manager):
        with pytest.raises(JobNotFoundError, match="Job not found: nope"):
            manager.get("nope")

    def test_exists(self, manager, make_job):
        make_job("nightly")
        assert manager.exists("nightly")
        assert not manager.exists("nope")

    def test_find_by_command_lowest_priority(self, manager, make_job):
        make_job("late", command="cache:clear", priority=10)
        make_job("early", command="cache:clear", priority=1)
        assert manager.find_by_command("cache:clear").name == "early"

    def test_find_by_command_missing(self, manager):
        assert manager.find_by_command("cache:clear") is None

    def test_find_by_command_is_cached(self, manager, repository, make_job):
        make_job("early", command="cache:clear")

        with patch.object(
            repository, "find_by_command", wraps=repository.find_by_command
        ) as spy:
            first = manager.find_by_command("cache:clear")
            second = manager.find_by_command("cache:clear")

        assert first.id == second.id
        assert spy.call_count == 1

    def test_stale_cache_entry_is_dropped(self, repository, make_job):
        cache = TTLCache()
        manager = JobManager(repository, cache=cache)
        job = make_job("early", command="cache:clear")
        cache.set("command-id:cache:clear", 999)

        assert manager.find_by_command("cache:clear").id == job.id
        assert cache.get("command-id:cache:clear") == job.id

    @pytest.mark.parametrize("name", ["", ":clear", "cache:", "cache::clear"])
    def test_find_by_command_rejects_bad_names(self, manager, name):
        with pytest.raises(SchedulerError):
            manager.find_by_command(name)


class TestMutations:
    def test_run(self, manager, make_job):
        make_job("nightly", delay_until=NOW + timedelta(days=1))

        job = manager.run("nightly")

        assert job.execute_immediately is True
        assert job.delay_until is None
        assert manager.is_running("nightly")

    def test_stop(self, manager, make_job):
        make_job("nightly", execute_immediately=True)
        manager.stop("nightly")
        assert manager.is_stopped("nightly")

    def test_enable_disable(self, manager, make_job):
        make_job("nightly")

        manager.disable("nightly")
        assert manager.is_disabled("nightly")
        assert not manager.is_enabled("nightly")

        manager.enable("nightly")
        assert manager.is_enabled("nightly")

    def test_set_on_demand(self, manager, make_job):
        make_job(
            "nightly",
            delay_until=NOW + timedelta(days=1),
            run_until=NOW + timedelta(days=2),
        )

        job = manager.set_on_demand("nightly")

        assert manager.is_on_demand("nightly")
        assert job.delay_until is None
        assert job.run_until is None

    def test_set_auto_keeps_expression(self, manager, make_job):
        make_job("nightly", cron_expression="0 2 * * *", mode=ExecutionMode.ON_DEMAND)
        job = manager.set_auto("nightly")
        assert manager.is_auto("nightly")
        assert job.cron_expression == "0 2 * * *"

    def test_set_auto_new_expression(self, manager, make_job):
        make_job("nightly", cron_expression=None, mode=ExecutionMode.ON_DEMAND)
        assert manager.set_auto("nightly", "*/5 * * * *").cron_expression == "*/5 * * * *"

    def test_set_auto_without_expression(self, manager, make_job):
        make_job("adhoc", cron_expression=None, mode=ExecutionMode.ON_DEMAND)
        with pytest.raises(InvalidExpressionError):
            manager.set_auto("adhoc")
        assert manager.is_on_demand("adhoc")

    def test_set_auto_invalid_expression(self, manager, make_job):
        make_job("nightly")
        with pytest.raises(InvalidExpressionError):
            manager.set_auto("nightly", "every tuesday")

    def test_run_after_forces_auto(self, manager, make_job):
        make_job("nightly", mode=ExecutionMode.ON_DEMAND)
        when = NOW + timedelta(hours=6)

        job = manager.run_after("nightly", when)

        assert job.delay_until == when
        assert manager.is_auto("nightly")

    def test_run_until(self, manager, make_job):
        make_job("nightly")
        when = NOW + timedelta(days=7)
        assert manager.run_until("nightly", when).run_until == when

    def test_naive_datetime_taken_as_utc(self, manager, make_job):
        make_job("nightly")
        job = manager.run_until("nightly", datetime(2026, 4, 1, 8, 0))
        assert job.run_until == datetime(2026, 4, 1, 8, 0, tzinfo=UTC)

    def test_mutation_of_missing_job(self, manager):
        with pytest.raises(JobNotFoundError):
            manager.run("nope")


class TestPredicates:
    def test_is_failing(self, manager, repository, make_job):
        job = make_job("nightly")
        assert not manager.is_failing("nightly")

        repository.acquire_lock(job.id, NOW)
        repository.release_lock(job.id, FAILURE_RETURN_CODE)

        assert manager.is_failing("nightly")

    def test_nonzero_exit_is_not_failing(self, manager, repository, make_job):
        job = make_job("nightly")
        repository.acquire_lock(job.id, NOW)
        repository.release_lock(job.id, 1)
        assert not manager.is_failing("nightly")

    def test_locked_is_running(self, manager, make_job):
        make_job("nightly", locked=True)
        assert manager.is_running("nightly")
        assert not manager.is_stopped("nightly")
