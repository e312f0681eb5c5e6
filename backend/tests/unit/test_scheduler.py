"""
Tests for scheduler with advisory locks.
"""
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from salonbook.jobs.scheduler import (
    SchedulerManager,
    get_lock_key,
    get_scheduler,
    reset_scheduler,
    with_advisory_lock,
)


def _postgres_session_factory(lock_acquired: bool):
    """SessionLocal stand-in bound to a fake PostgreSQL engine."""
    conn = MagicMock()
    conn.execute.return_value.scalar.return_value = lock_acquired

    engine = MagicMock()
    engine.dialect.name = "postgresql"
    engine.connect.return_value.__enter__.return_value = conn

    factory = MagicMock()
    factory.kw = {"bind": engine}
    return factory, conn


@pytest.mark.unit
def test_get_lock_key_consistent():
    """Test that get_lock_key generates consistent keys."""
    key1 = get_lock_key("booking_reminders")
    key2 = get_lock_key("booking_reminders")

    assert key1 == key2
    assert isinstance(key1, int)
    assert 0 < key1 < 2 ** 63  # Fits a signed bigint


@pytest.mark.unit
def test_get_lock_key_unique():
    """Test that different job IDs generate different keys."""
    assert get_lock_key("job_1") != get_lock_key("job_2")


@pytest.mark.unit
def test_with_advisory_lock_runs_directly_on_sqlite():
    """Test that non-PostgreSQL engines run the job without a lock."""
    @with_advisory_lock("test_job")
    def job(value):
        return value * 2

    assert job(21) == 42


@pytest.mark.unit
def test_with_advisory_lock_acquired():
    """Test the job runs and the lock is released when acquired."""
    factory, conn = _postgres_session_factory(lock_acquired=True)

    @with_advisory_lock("test_job")
    def job():
        return "success"

    with patch("salonbook.jobs.scheduler.db_module.SessionLocal", factory):
        result = job()

    assert result == "success"
    statements = [str(call.args[0]) for call in conn.execute.call_args_list]
    assert "pg_try_advisory_lock" in statements[0]
    assert "pg_advisory_unlock" in statements[-1]


@pytest.mark.unit
def test_with_advisory_lock_already_held():
    """Test the job is skipped when another instance holds the lock."""
    factory, conn = _postgres_session_factory(lock_acquired=False)
    calls = []

    @with_advisory_lock("test_job")
    def job():
        calls.append(1)
        return "should not execute"

    with patch("salonbook.jobs.scheduler.db_module.SessionLocal", factory):
        result = job()

    assert result is None
    assert calls == []
    assert conn.execute.call_count == 1


@pytest.mark.unit
def test_with_advisory_lock_released_on_error():
    """Test the lock is released when the job raises."""
    factory, conn = _postgres_session_factory(lock_acquired=True)

    @with_advisory_lock("test_job")
    def job():
        raise ValueError("Test error")

    with patch("salonbook.jobs.scheduler.db_module.SessionLocal", factory):
        with pytest.raises(ValueError, match="Test error"):
            job()

    assert "pg_advisory_unlock" in str(conn.execute.call_args_list[-1].args[0])


@pytest.mark.unit
def test_scheduler_manager_start_stop():
    """Test starting and stopping scheduler."""
    manager = SchedulerManager()
    assert not manager.running

    manager.start()
    assert manager.running

    manager.shutdown(wait=False)
    assert not manager.running


@pytest.mark.unit
def test_scheduler_manager_add_and_remove_interval_job():
    """Test adding and removing an interval job."""
    manager = SchedulerManager()

    def job():
        pass

    manager.add_interval_job(job, job_id="test_interval", minutes=5)

    jobs = manager.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].id == "test_interval"
    assert isinstance(jobs[0].trigger, IntervalTrigger)

    manager.remove_job("test_interval")
    assert manager.get_jobs() == []


@pytest.mark.unit
def test_add_interval_job_requires_interval():
    """Test that an interval is mandatory."""
    with pytest.raises(ValueError):
        SchedulerManager().add_interval_job(lambda: None, job_id="no_interval")


@pytest.mark.unit
def test_get_scheduler_singleton():
    """Test that get_scheduler returns singleton until reset."""
    reset_scheduler()
    scheduler1 = get_scheduler()
    scheduler2 = get_scheduler()

    assert scheduler1 is scheduler2

    reset_scheduler()
    assert get_scheduler() is not scheduler1
    reset_scheduler()
