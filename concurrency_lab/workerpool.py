"""Fixed-size worker pool with graceful shutdown, cancellation and counters."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, List, Optional

Job = Callable[[threading.Event], Any]
"""A unit of work: receives the pool's cancellation event, raises on failure."""

_DEFAULT_LOGGER = logging.getLogger(__name__)


class PoolClosedError(RuntimeError):
    """Raised when a job is submitted to a pool that is shutting down."""

    def __init__(self, message: str = "worker pool is closed") -> None:
        super().__init__(message)


class ShutdownTimeoutError(RuntimeError):
    """Raised when shutdown had to force-cancel running jobs."""

    def __init__(
        self,
        message: str = "shutdown timeout elapsed; workers were force-cancelled",
    ) -> None:
        super().__init__(message)


class SubmitCancelledError(TimeoutError):
    """Raised when a submission gave up waiting for queue space."""

    def __init__(self, message: str = "submit cancelled: deadline exceeded") -> None:
        super().__init__(message)


@dataclass
class PoolConfig:
    """Construction parameters for a :class:`WorkerPool`.

    ``queue_size`` of 0 makes submission a direct hand-off to a free worker.
    Non-positive ``workers`` and ``shutdown_timeout`` fall back to 1 and 30 s.
    """

    workers: int = 1
    queue_size: int = 0
    shutdown_timeout: float = 30.0
    logger: Optional[logging.Logger] = None

    def _with_defaults(self) -> PoolConfig:
        if self.queue_size < 0:
            raise ValueError(f"queue_size must not be negative, got {self.queue_size}")
        return dataclasses.replace(
            self,
            workers=self.workers if self.workers > 0 else 1,
            shutdown_timeout=self.shutdown_timeout if self.shutdown_timeout > 0 else 30.0,
            logger=self.logger if self.logger is not None else _DEFAULT_LOGGER,
        )


@dataclass(frozen=True)
class Metrics:
    """A snapshot of the pool's counters."""

    submitted: int = 0
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    dropped: int = 0


class _JobChannel:
    """A closable queue with channel semantics: a send with no buffer room
    succeeds only while a receiver is waiting for it."""

    _CLOSED = object()

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._items: Deque[Job] = deque()
        self._waiting = 0
        self._closed = False
        self._cond = threading.Condition()

    def send(self, item: Job, timeout: Optional[float]) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._closed:
                    raise PoolClosedError()
                if len(self._items) < self._capacity + self._waiting:
                    self._items.append(item)
                    self._cond.notify_all()
                    return True
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)

    def receive(self) -> Any:
        with self._cond:
            self._waiting += 1
            self._cond.notify_all()
            try:
                while not self._items:
                    if self._closed:
                        return self._CLOSED
                    self._cond.wait()
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            finally:
                self._waiting -= 1

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self):
        while True:
            item = self.receive()
            if item is self._CLOSED:
                return
            yield item


class WorkerPool:
    """A fixed number of worker threads consuming submitted jobs.

    Jobs receive a :class:`threading.Event` that is set when shutdown runs out
    of time, so long-running jobs can stop early.
    """

    def __init__(self, config: Optional[PoolConfig] = None) -> None:
        self._config = (config or PoolConfig())._with_defaults()
        self._log = self._config.logger
        self._jobs = _JobChannel(self._config.queue_size)
        self._cancelled = threading.Event()
        self._closed = False
        self._shut_down = False
        self._shutdown_lock = threading.Lock()
        self._counts_lock = threading.Lock()
        self._counts = {name: 0 for name in ("submitted", "started", "succeeded", "failed", "dropped")}

        self._log.info(
            "[pool] starting %d workers (queue=%d, shutdownTimeout=%ss)",
            self._config.workers,
            self._config.queue_size,
            self._config.shutdown_timeout,
        )
        self._workers: List[threading.Thread] = [
            threading.Thread(target=self._run_worker, args=(worker_id,), name=f"worker-{worker_id}", daemon=True)
            for worker_id in range(self._config.workers)
        ]
        for worker in self._workers:
            worker.start()

    def _bump(self, name: str) -> None:
        with self._counts_lock:
            self._counts[name] += 1

    def submit(self, job: Job, timeout: Optional[float] = None) -> None:
        """Enqueue ``job``, waiting up to ``timeout`` seconds for queue space.

        Raises :class:`PoolClosedError` once shutdown has begun and
        :class:`SubmitCancelledError` if the wait for space timed out.
        """
        if self._closed:
            self._bump("dropped")
            raise PoolClosedError()
        self._bump("submitted")
        try:
            sent = self._jobs.send(job, timeout)
        except PoolClosedError:
            self._bump("dropped")
            raise
        if not sent:
            self._bump("dropped")
            raise SubmitCancelledError()

    def shutdown(self) -> None:
        """Stop accepting jobs, drain the queue and wait for the workers.

        If the workers are still busy after the configured timeout, running
        jobs are cancelled and :class:`ShutdownTimeoutError` is raised.
        Calling it again after the first call does nothing.
        """
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True
            self._log.info("[pool] shutdown initiated")
            self._closed = True
            self._jobs.close()

            deadline = time.monotonic() + self._config.shutdown_timeout
            for worker in self._workers:
                worker.join(max(0.0, deadline - time.monotonic()))

            if any(worker.is_alive() for worker in self._workers):
                self._log.info(
                    "[pool] shutdown timeout (%ss) elapsed — cancelling workers",
                    self._config.shutdown_timeout,
                )
                self._cancelled.set()
                for worker in self._workers:
                    worker.join()
                self._log.info("[pool] shutdown complete (forced)")
                raise ShutdownTimeoutError()

            self._log.info("[pool] shutdown complete (all workers exited cleanly)")

    def metrics(self) -> Metrics:
        """Return a snapshot of the counters."""
        with self._counts_lock:
            return Metrics(**self._counts)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _run_worker(self, worker_id: int) -> None:
        self._log.info("[worker %d] started", worker_id)
        for job in self._jobs:
            if self._cancelled.is_set():
                self._log.info("[worker %d] skipping job: context already cancelled", worker_id)
                self._bump("failed")
                continue
            self._bump("started")
            try:
                job(self._cancelled)
            except Exception as exc:  # a failing job must not kill its worker
                self._bump("failed")
                self._log.info("[worker %d] job failed: %s", worker_id, exc)
            else:
                self._bump("succeeded")
        self._log.info("[worker %d] exited", worker_id)