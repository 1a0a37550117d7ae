"""A fixed-size pool of worker threads fed from a bounded job queue."""

from __future__ import annotations

import threading
from collections import deque
from enum import Enum
from typing import Any, Callable

__all__ = [
    "SchedulerError",
    "QueueFullError",
    "SchedulerShutdownError",
    "JobScheduler",
]


class SchedulerError(RuntimeError):
    """Base class of the errors raised by :class:`JobScheduler`."""


class QueueFullError(SchedulerError):
    """Raised when a job is added while the queue holds ``queue_size`` jobs."""


class SchedulerShutdownError(SchedulerError):
    """Raised when the scheduler is used after it has been shut down."""


class _State(Enum):
    RUNNING = 0
    IMMEDIATE = 1
    GRACEFUL = 2


Job = tuple[Callable[[Any], Any], Any]


class JobScheduler:
    """Run ``function(argument)`` jobs on ``thread_count`` worker threads.

    At most ``queue_size`` jobs may wait in the queue at once.  Exceptions
    raised by jobs are collected in :attr:`failures` instead of stopping
    the worker that ran them.
    """

    def __init__(self, thread_count: int, queue_size: int) -> None:
        if thread_count < 0:
            raise ValueError("thread count cannot be negative")
        if queue_size < 1:
            raise ValueError("queue size must be at least 1")
        self.queue_size = queue_size
        self.jobs_added = 0
        self.failures: list[BaseException] = []
        self._queue: deque[Job] = deque()
        self._cond = threading.Condition()
        self._state = _State.RUNNING
        self._threads = [
            threading.Thread(target=self._worker, daemon=True)
            for _ in range(thread_count)
        ]
        for thread in self._threads:
            thread.start()

    @property
    def is_running(self) -> bool:
        return self._state is _State.RUNNING

    def add_job(self, function: Callable[[Any], Any], argument: Any = None) -> None:
        """Queue ``function(argument)`` for one of the workers."""
        if function is None:
            raise SchedulerError("no job function given")
        with self._cond:
            if len(self._queue) >= self.queue_size:
                raise QueueFullError("job queue is full")
            if self._state is not _State.RUNNING:
                raise SchedulerShutdownError("scheduler has been shut down")
            self._queue.append((function, argument))
            self.jobs_added += 1
            self._cond.notify()

    def wait_all(self, graceful: bool = True) -> None:
        """Stop accepting jobs and wait for the workers to finish.

        With *graceful* the queued jobs are run first; otherwise workers
        stop after the job they are running.
        """
        self._stop(graceful)

    def shutdown(self, graceful: bool = False) -> None:
        """Stop the workers, as :meth:`wait_all`, and release them."""
        self._stop(graceful)
        self._threads = []

    def _stop(self, graceful: bool) -> None:
        with self._cond:
            if self._state is not _State.RUNNING:
                raise SchedulerShutdownError("scheduler has already been shut down")
            self._state = _State.GRACEFUL if graceful else _State.IMMEDIATE
            self._cond.notify_all()
        for thread in self._threads:
            thread.join()

    def _worker(self) -> None:
        while True:
            with self._cond:
                while not self._queue and self._state is _State.RUNNING:
                    self._cond.wait()
                if self._state is _State.IMMEDIATE or (
                    self._state is _State.GRACEFUL and not self._queue
                ):
                    return
                function, argument = self._queue.popleft()
            try:
                function(argument)
            except Exception as exc:  # a failing job must not kill the worker
                with self._cond:
                    self.failures.append(exc)

    def __enter__(self) -> JobScheduler:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.is_running:
            self.shutdown(graceful=True)