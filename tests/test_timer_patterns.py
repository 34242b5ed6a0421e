import random
import time

import pytest

from concurrency_lab.timer_patterns import (
    RetryExhaustedError,
    debounce,
    rate_limited,
    retry_with_backoff,
    run_periodic,
)


def test_debounce_source_scenario_fires_twice():
    log = debounce([0.0, 0.03, 0.06, 0.09, 0.25, 0.28], 0.12)
    labels = [label for label, _ in log]
    assert labels == [
        "event-1", "event-2", "event-3", "event-4", "fired",
        "event-5", "event-6", "fired",
    ]
    offsets = [offset for _, offset in log]
    assert offsets == sorted(offsets)


def test_debounce_fire_follows_quiet_window():
    log = debounce([0.0, 0.03], 0.12)
    last_event = log[-2][1]
    fired_at = log[-1][1]
    assert log[-1][0] == "fired"
    assert fired_at - last_event >= 0.11


def test_debounce_without_events_fires_once():
    log = debounce([], 0.05)
    assert [label for label, _ in log] == ["fired"]
    assert log[0][1] >= 0.045


def test_rate_limited_keeps_order_and_spacing():
    start = time.monotonic()
    results = list(rate_limited([1, 2, 3], 0.02))
    elapsed = time.monotonic() - start
    assert [item for item, _ in results] == [1, 2, 3]
    moments = [moment for _, moment in results]
    assert moments == sorted(moments)
    assert elapsed >= 0.055


def test_rate_limited_empty_input():
    assert list(rate_limited([], 0.01)) == []


def test_retry_succeeds_after_failures():
    calls = []
    sleeps = []

    def operation():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("down")
        return "ok"

    result = retry_with_backoff(operation, 5, 0.02, 0.2, random.Random(1), sleeps.append)
    assert result == "ok"
    assert len(calls) == 3
    assert len(sleeps) == 2
    assert 0.02 <= sleeps[0] < 0.03
    assert 0.04 <= sleeps[1] < 0.06


def test_retry_exhausted_raises_with_cause():
    sleeps = []
    error = ValueError("always")

    def operation():
        raise error

    with pytest.raises(RetryExhaustedError) as info:
        retry_with_backoff(operation, 3, 0.02, 0.2, random.Random(2), sleeps.append)
    assert info.value.attempts == 3
    assert info.value.last_error is error
    assert info.value.__cause__ is error
    assert len(sleeps) == 2


def test_retry_delay_capped_at_max():
    sleeps = []

    def operation():
        raise RuntimeError("fail")

    with pytest.raises(RetryExhaustedError):
        retry_with_backoff(operation, 5, 0.1, 0.12, random.Random(3), sleeps.append)
    assert all(delay <= 0.12 for delay in sleeps)
    assert sleeps[-1] == 0.12


def test_retry_rejects_zero_attempts():
    with pytest.raises(ValueError):
        retry_with_backoff(lambda: None, 0, 0.02, 0.2, random.Random(), lambda s: None)


def test_run_periodic_counts_ticks():
    seen = []
    count = run_periodic(0.02, 0.11, lambda n, t: seen.append(n))
    assert 3 <= count <= 6
    assert seen == list(range(1, count + 1))


def test_run_periodic_stops_before_first_tick():
    assert run_periodic(1.0, 0.05) == 0