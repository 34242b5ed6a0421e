"""Timer patterns: debounce, rate limiting, retry with backoff and periodic tasks."""

from __future__ import annotations

import argparse
import random
import time
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .timers import Ticker, Timer, after, after_func, wait_with_timeout

T = TypeVar("T")

_RNG = random.Random()


class RetryExhaustedError(RuntimeError):
    """Raised when every retry attempt failed; the last failure is the cause."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"giving up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def debounce(event_offsets: Iterable[float], window: float) -> List[Tuple[str, float]]:
    """Feed events at the given offsets (seconds from start) through a debounce timer.

    Each event restarts a ``window``-second timer; the action fires only once
    the events have been quiet for a whole window. Returns the log in order:
    ``("event-N", offset)`` for each event and ``("fired", offset)`` for each
    debounced action, offsets measured from the start.
    """
    start = time.monotonic()

    def elapsed() -> float:
        return time.monotonic() - start

    log: List[Tuple[str, float]] = []
    timer = Timer(window)
    armed = True
    try:
        for number, offset in enumerate(event_offsets, 1):
            remaining = offset - elapsed()
            if armed and remaining > 0:
                try:
                    timer.wait(remaining)
                except TimeoutError:
                    pass
                else:
                    armed = False
                    log.append(("fired", elapsed()))
                    remaining = offset - elapsed()
            if remaining > 0:
                time.sleep(remaining)
            log.append((f"event-{number}", elapsed()))
            if not timer.stop():
                try:
                    timer.wait(0)
                except TimeoutError:
                    pass
            timer.reset(window)
            armed = True
        if armed:
            timer.wait()
            log.append(("fired", elapsed()))
    finally:
        timer.stop()
    return log


def rate_limited(items: Iterable[T], interval: float) -> Iterator[Tuple[T, datetime]]:
    """Yield each item with the time it was let through, at most one per ``interval`` seconds."""
    limiter = Ticker(interval)
    try:
        for item in items:
            yield item, limiter.next()
    finally:
        limiter.stop()


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = 5,
    base_delay: float = 0.02,
    max_delay: float = 0.2,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Call ``operation`` until it succeeds, backing off exponentially with jitter.

    After each failure the wait is the current delay plus up to half of it at
    random, capped at ``max_delay``; the delay then doubles. Raises
    :class:`RetryExhaustedError` after ``max_attempts`` failures.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    rng = rng or _RNG
    delay = base_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if attempt >= max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
        jitter = rng.random() * (delay / 2) if delay > 0 else 0.0
        sleep(min(delay + jitter, max_delay))
        delay *= 2
    raise AssertionError("unreachable")


def run_periodic(
    interval: float,
    stop_after: float,
    task: Optional[Callable[[int, datetime], Any]] = None,
) -> int:
    """Run ``task(tick_number, tick_time)`` every ``interval`` seconds until ``stop_after`` elapses.

    Returns the number of ticks handled.
    """
    ticker = Ticker(interval)
    deadline = time.monotonic() + stop_after
    count = 0
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                tick = ticker.next(remaining)
            except TimeoutError:
                break
            count += 1
            if task is not None:
                task(count, tick)
    finally:
        ticker.stop()
    return count


# ── Demo runner ───────────────────────────────────────────────────────────────


def _clock(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S.") + f"{moment.microsecond // 1000:03d}"


def _ms(seconds: float) -> str:
    return f"{round(seconds * 1000)}ms"


def _section(title: str) -> None:
    print(f"\n━━━ {title} ━━━")


def _demo_timer() -> None:
    timer = Timer(0.08)
    print("  waiting for timer...")
    print(f"  fired at {_clock(timer.wait())}")


def _demo_timer_stop() -> None:
    timer = Timer(0.2)
    stopped = timer.stop()
    print(f"  stop() returned: {str(stopped).lower()} (true = cancelled in time)")
    if not stopped:
        timer.wait()
        print("  drained ghost tick")
    try:
        timer.wait(0.3)
        print("  unexpected tick")
    except TimeoutError:
        print("  confirmed: no tick after stop()")


def _demo_timer_reset() -> None:
    timer = Timer(0.5)
    if not timer.stop():
        try:
            timer.wait(0)
        except TimeoutError:
            pass
    timer.reset(0.06)
    print(f"  reset timer fired at {_clock(timer.wait())}")


def _demo_after_func() -> None:
    import threading

    done = threading.Event()

    def callback() -> None:
        print(f"  after_func callback at {_clock(datetime.now())}")
        done.set()

    timer = after_func(0.06, callback)
    print(f"  after_func scheduled at {_clock(datetime.now())}")
    done.wait()
    timer.stop()


def _demo_ticker() -> None:
    ticker = Ticker(0.04)
    deadline = time.monotonic() + 0.16
    try:
        while True:
            try:
                tick = ticker.next(max(0.0, deadline - time.monotonic()))
            except TimeoutError:
                print("  deadline reached, stopping ticker")
                return
            print(f"  tick at {_clock(tick)}")
    finally:
        ticker.stop()


def _demo_ticker_reset() -> None:
    ticker = Ticker(0.02)
    try:
        print("  phase 1: 20 ms interval")
        for number in range(1, 4):
            print(f"    tick {number} at {_clock(ticker.next())}")
        ticker.reset(0.07)
        print("  phase 2: 70 ms interval")
        for number in range(1, 4):
            print(f"    tick {number} at {_clock(ticker.next())}")
    finally:
        ticker.stop()


def _demo_after() -> None:
    print("  waiting 60 ms via after...")
    print(f"  received at {_clock(after(0.06).wait())}")


def _demo_iterate_ticker() -> None:
    ticker = Ticker(0.05)
    deadline = time.monotonic() + 0.16
    for tick in ticker:
        if time.monotonic() >= deadline:
            ticker.stop()
            break
        print(f"  ticker iteration at {_clock(tick)}")
    print("  done")


def _demo_timeout() -> None:
    def slow() -> str:
        time.sleep(0.2)
        return "data"

    try:
        print("  got result:", wait_with_timeout(slow, 0.1))
    except TimeoutError:
        print("  timed out waiting for result")


def _demo_debounce() -> None:
    window = 0.12
    print(f"  debounce window: {_ms(window)}")
    fired = 0
    for label, offset in debounce([0.0, 0.03, 0.06, 0.09, 0.25, 0.28], window):
        if label == "fired":
            fired += 1
            print(f"  debounced action fired at +{_ms(offset)} (fired {fired} time(s))")
        else:
            print(f"  received {label} at +{_ms(offset)} — resetting timer")


def _demo_rate_limit() -> None:
    print("  processing 8 requests at max 1 per 50 ms:")
    for request, moment in rate_limited(range(1, 9), 0.05):
        print(f"    request {request} processed at {_clock(moment)}")


def _demo_retry() -> None:
    fail_until = 3
    attempts = 0

    def operation() -> str:
        nonlocal attempts
        attempts += 1
        if attempts < fail_until:
            print(f"  attempt {attempts}... failed")
            raise ConnectionError(f"attempt {attempts} failed")
        print(f"  attempt {attempts}... success")
        return "ok"

    def announce_and_sleep(seconds: float) -> None:
        print(f"  retrying in {_ms(seconds)}")
        time.sleep(seconds)

    try:
        retry_with_backoff(operation, sleep=announce_and_sleep)
    except RetryExhaustedError:
        print("  giving up")


def _demo_periodic() -> None:
    print("  periodic task running (interval 60 ms, stops after ~250 ms):")
    count = run_periodic(0.06, 0.25, lambda n, t: print(f"    tick {n} at {_clock(t)}"))
    print(f"  cancelled after {count} ticks")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run every timer demo in turn."""
    parser = argparse.ArgumentParser(prog="timers", description="Timer and ticker demos.")
    parser.parse_args(argv)

    demos = [
        ("Timer — single shot", _demo_timer),
        ("Timer.stop — cancel before it fires", _demo_timer_stop),
        ("Timer.reset — reuse the timer", _demo_timer_reset),
        ("after_func — run a function after a delay", _demo_after_func),
        ("Ticker — periodic ticks", _demo_ticker),
        ("Ticker.reset — change the interval on the fly", _demo_ticker_reset),
        ("after — single-shot shortcut", _demo_after),
        ("Iterating a ticker", _demo_iterate_ticker),
        ("Pattern: timeout", _demo_timeout),
        ("Pattern: debounce", _demo_debounce),
        ("Pattern: rate limiter", _demo_rate_limit),
        ("Pattern: retry with exponential backoff", _demo_retry),
        ("Pattern: cancellable periodic task", _demo_periodic),
    ]
    for title, demo in demos:
        _section(title)
        demo()
    return 0