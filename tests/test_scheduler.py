import threading

import pytest

from joinquery.scheduler import (
    JobScheduler,
    QueueFullError,
    SchedulerError,
    SchedulerShutdownError,
)


def test_graceful_shutdown_runs_every_job():
    done = []
    lock = threading.Lock()

    def job(value):
        with lock:
            done.append(value)

    scheduler = JobScheduler(2, 10)
    for value in range(10):
        scheduler.add_job(job, value)
    scheduler.shutdown(graceful=True)
    assert sorted(done) == list(range(10))
    assert scheduler.jobs_added == 10


def test_queue_full_without_workers():
    scheduler = JobScheduler(0, 1)
    scheduler.add_job(lambda arg: None, None)
    with pytest.raises(QueueFullError):
        scheduler.add_job(lambda arg: None, None)
    assert scheduler.jobs_added == 1


def test_shutdown_twice_raises():
    scheduler = JobScheduler(1, 2)
    scheduler.shutdown(graceful=True)
    with pytest.raises(SchedulerShutdownError):
        scheduler.shutdown(graceful=True)


def test_wait_all_then_shutdown_raises():
    scheduler = JobScheduler(1, 2)
    scheduler.wait_all()
    assert scheduler.is_running is False
    with pytest.raises(SchedulerShutdownError):
        scheduler.shutdown()


def test_add_after_shutdown_raises():
    scheduler = JobScheduler(1, 2)
    scheduler.shutdown()
    with pytest.raises(SchedulerShutdownError):
        scheduler.add_job(print, "x")


def test_missing_function_raises():
    scheduler = JobScheduler(0, 2)
    with pytest.raises(SchedulerError):
        scheduler.add_job(None, 1)


def test_immediate_shutdown_drops_queued_jobs():
    started = threading.Event()
    release = threading.Event()
    ran = []

    def blocking(_):
        started.set()
        release.wait(5)
        ran.append("first")

    scheduler = JobScheduler(1, 4)
    scheduler.add_job(blocking, None)
    assert started.wait(5)
    scheduler.add_job(lambda _: ran.append("second"), None)
    timer = threading.Timer(0.1, release.set)
    timer.start()
    scheduler.shutdown(graceful=False)
    timer.join()
    assert ran == ["first"]


def test_failing_job_is_recorded_and_others_run():
    done = []

    def bad(_):
        raise ValueError("boom")

    scheduler = JobScheduler(1, 4)
    scheduler.add_job(bad, None)
    scheduler.add_job(done.append, 7)
    scheduler.shutdown(graceful=True)
    assert done == [7]
    assert len(scheduler.failures) == 1
    assert isinstance(scheduler.failures[0], ValueError)


def test_context_manager_drains_queue():
    done = []
    with JobScheduler(2, 5) as scheduler:
        for value in range(5):
            scheduler.add_job(done.append, value)
    assert sorted(done) == list(range(5))
    assert scheduler.is_running is False


def test_invalid_sizes_rejected():
    with pytest.raises(ValueError):
        JobScheduler(1, 0)
    with pytest.raises(ValueError):
        JobScheduler(-1, 3)