"""One-shot timers, periodic tickers and timeout helpers built on threads."""

from __future__ import annotations

import queue
import threading
import time
from datetime import datetime
from typing import Any, Callable, Iterator, Optional


class Timer:
    """A one-shot timer that delivers a single tick after ``duration`` seconds.

    At most one tick is held at a time; :meth:`stop` does not discard a tick
    that was already delivered.
    """

    def __init__(self, duration: float) -> None:
        self._cond = threading.Condition()
        self._tick: Optional[datetime] = None
        self._generation = 0
        self._active = False
        self._thread: Optional[threading.Timer] = None
        with self._cond:
            self._arm(duration)

    def _arm(self, duration: float) -> None:
        self._generation += 1
        generation = self._generation
        self._active = True
        thread = threading.Timer(max(0.0, duration), self._fire, args=(generation,))
        thread.daemon = True
        self._thread = thread
        thread.start()

    def _fire(self, generation: int) -> None:
        with self._cond:
            if generation != self._generation or not self._active:
                return
            self._active = False
            if self._tick is None:
                self._tick = datetime.now()
            self._cond.notify_all()

    def _disarm(self) -> bool:
        was_active = self._active
        self._active = False
        self._generation += 1
        if self._thread is not None:
            self._thread.cancel()
        return was_active

    def wait(self, timeout: Optional[float] = None) -> datetime:
        """Block until the timer's tick is available, take it and return its time.

        Raises :class:`TimeoutError` if no tick arrives within ``timeout`` seconds.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._tick is not None, timeout):
                raise TimeoutError("timer did not fire in time")
            tick, self._tick = self._tick, None
            assert tick is not None
            return tick

    def stop(self) -> bool:
        """Prevent the timer from firing; return ``False`` if it already fired or was stopped."""
        with self._cond:
            return self._disarm()

    def reset(self, duration: float) -> bool:
        """Re-arm the timer for ``duration`` seconds; return whether it was still active."""
        with self._cond:
            was_active = self._disarm()
            self._arm(duration)
            return was_active


class _FuncTimer(Timer):
    """A timer that runs a function in its own thread instead of delivering a tick."""

    def __init__(self, delay: float, func: Callable[[], Any]) -> None:
        self._func = func
        super().__init__(delay)

    def _fire(self, generation: int) -> None:
        with self._cond:
            if generation != self._generation or not self._active:
                return
            self._active = False
        self._func()


class Ticker:
    """Delivers a tick every ``interval`` seconds until stopped.

    Like a one-slot channel, a tick that is not taken before the next one is
    due is kept and the newer one is dropped.
    """

    def __init__(self, interval: float) -> None:
        self._check(interval)
        self._interval = interval
        self._cond = threading.Condition()
        self._tick: Optional[datetime] = None
        self._stopped = False
        self._next_due = time.monotonic() + interval
        self._start_thread()

    @staticmethod
    def _check(interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"non-positive interval for Ticker: {interval}")

    def _start_thread(self) -> None:
        thread = threading.Thread(target=self._run, name="ticker", daemon=True)
        thread.start()

    def _run(self) -> None:
        with self._cond:
            while not self._stopped:
                remaining = self._next_due - time.monotonic()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                if self._tick is None:
                    self._tick = datetime.now()
                self._cond.notify_all()
                now = time.monotonic()
                self._next_due += self._interval
                if self._next_due <= now:
                    self._next_due = now + self._interval

    def _take(self, timeout: Optional[float]) -> Optional[datetime]:
        with self._cond:
            ready = self._cond.wait_for(lambda: self._tick is not None or self._stopped, timeout)
            if not ready:
                raise TimeoutError("no tick in time")
            tick, self._tick = self._tick, None
            return tick

    def next(self, timeout: Optional[float] = None) -> datetime:
        """Wait for the next tick and return its time.

        Raises :class:`TimeoutError` if none arrives within ``timeout`` seconds
        and :class:`RuntimeError` if the ticker is stopped with no tick pending.
        """
        tick = self._take(timeout)
        if tick is None:
            raise RuntimeError("ticker is stopped")
        return tick

    def reset(self, interval: float) -> None:
        """Switch to ``interval`` seconds, counting from now; restarts a stopped ticker."""
        self._check(interval)
        with self._cond:
            self._interval = interval
            self._next_due = time.monotonic() + interval
            if self._stopped:
                self._stopped = False
                self._start_thread()
            self._cond.notify_all()

    def stop(self) -> None:
        """Stop delivering ticks; a tick already pending can still be taken."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[datetime]:
        while True:
            tick = self._take(None)
            if tick is None:
                return
            yield tick


def after_func(delay: float, func: Callable[[], Any]) -> Timer:
    """Call ``func`` in its own thread after ``delay`` seconds; the returned timer can stop it."""
    return _FuncTimer(delay, func)


def after(delay: float) -> Timer:
    """Return a started one-shot timer; ``after(d).wait()`` blocks for ``d`` seconds."""
    return Timer(delay)


def wait_with_timeout(func: Callable[[], Any], timeout: float) -> Any:
    """Run ``func`` in the background and return its result if it finishes within ``timeout``.

    Raises :class:`TimeoutError` otherwise; an exception raised by ``func`` is re-raised.
    """
    outcome: "queue.Queue[tuple]" = queue.Queue(maxsize=1)

    def run() -> None:
        try:
            outcome.put((True, func()))
        except BaseException as exc:  # handed back to the caller
            outcome.put((False, exc))

    threading.Thread(target=run, name="timed-call", daemon=True).start()
    try:
        ok, value = outcome.get(timeout=timeout)
    except queue.Empty:
        raise TimeoutError(f"no result within {timeout}s") from None
    if ok:
        return value
    raise value