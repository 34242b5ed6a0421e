"""Order-processing demo that feeds a worker pool until interrupted."""

from __future__ import annotations

import argparse
import functools
import itertools
import logging
import random
import signal
import sys
import threading
from concurrent.futures import CancelledError
from typing import Optional, Sequence

from .workerpool import PoolClosedError, PoolConfig, ShutdownTimeoutError, WorkerPool

_LOG = logging.getLogger(__name__)
_RNG = random.Random()


class OrderFailedError(RuntimeError):
    """Raised when processing an order fails."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"payment gateway timeout for order {order_id}")
        self.order_id = order_id


def process_order(cancelled: threading.Event, order_id: int, rng: Optional[random.Random] = None) -> None:
    """Simulate processing an order: 100–500 ms of work, failing about 10 % of the time.

    Raises :class:`concurrent.futures.CancelledError` if ``cancelled`` is set
    before the work finishes, and :class:`OrderFailedError` on a failure.
    """
    rng = rng or _RNG
    duration_ms = 100 + rng.randrange(400)
    _LOG.info("[job %3d] started  (will take %dms)", order_id, duration_ms)

    if cancelled.wait(duration_ms / 1000):
        _LOG.info("[job %3d] cancelled: context canceled", order_id)
        raise CancelledError(f"order {order_id} cancelled")

    if rng.randrange(10) == 0:
        error = OrderFailedError(order_id)
        _LOG.info("[job %3d] failed:    %s", order_id, error)
        raise error

    _LOG.info("[job %3d] done", order_id)


def _submit_orders(pool: WorkerPool, stop: threading.Event, interval: float) -> None:
    for order_id in itertools.count(1):
        if stop.is_set():
            return
        try:
            pool.submit(functools.partial(process_order, order_id=order_id))
        except PoolClosedError:
            return
        stop.wait(interval)


def _wait_for_stop(stop: threading.Event, duration: Optional[float]) -> None:
    if duration is not None:
        stop.wait(duration)
        return
    while not stop.wait(0.2):
        pass


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Submit orders to a pool until Ctrl+C, SIGTERM or ``--duration`` elapses."""
    parser = argparse.ArgumentParser(prog="orders", description="Feed simulated orders to a worker pool.")
    parser.add_argument("--workers", type=int, default=4)
    parser.add_argument("--queue-size", type=int, default=20)
    parser.add_argument("--shutdown-timeout", type=float, default=3.0, help="seconds")
    parser.add_argument("--interval", type=float, default=0.08, help="seconds between submissions")
    parser.add_argument("--duration", type=float, default=None, help="stop after this many seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s.%(msecs)03d %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
        stream=sys.stdout,
    )

    pool = WorkerPool(
        PoolConfig(
            workers=args.workers,
            queue_size=args.queue_size,
            shutdown_timeout=args.shutdown_timeout,
            logger=_LOG,
        )
    )

    stop = threading.Event()
    previous_handler = None
    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        previous_handler = signal.signal(signal.SIGTERM, lambda signum, frame: stop.set())

    submitter = threading.Thread(target=_submit_orders, args=(pool, stop, args.interval), daemon=True)
    submitter.start()
    try:
        _wait_for_stop(stop, args.duration)
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        if in_main_thread:
            signal.signal(signal.SIGTERM, previous_handler)

    print()
    _LOG.info("[main] signal received — shutting down pool")
    try:
        pool.shutdown()
    except ShutdownTimeoutError:
        _LOG.info("[main] some jobs were cancelled (shutdown timeout exceeded)")
    submitter.join(1.0)

    m = pool.metrics()
    _LOG.info(
        "[main] metrics: submitted=%d started=%d succeeded=%d failed=%d dropped=%d",
        m.submitted,
        m.started,
        m.succeeded,
        m.failed,
        m.dropped,
    )
    return 0